import pytest
from decimal import Decimal
from types import SimpleNamespace

from config import TestingConfig
from pos_billing import create_app
from pos_billing.database import create_tables, drop_tables, get_session
from pos_billing.models import Store, Category, Product, TaxRule, TaxKind, InventoryRecord


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application instance for testing.

    Uses a file-backed SQLite database so sessions on worker threads share
    the same data.
    """
    db_path = tmp_path_factory.mktemp('db') / 'pos_test.db'

    class Config(TestingConfig):
        SQLALCHEMY_DATABASE_URI = f'sqlite:///{db_path}'

    app = create_app(Config)
    return app


@pytest.fixture(autouse=True)
def tables(app):
    """Fresh schema for every test."""
    create_tables()
    yield
    get_session().remove()
    drop_tables()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def app_ctx(app):
    with app.app_context():
        yield app


@pytest.fixture(scope='function')
def session():
    """Create database session for testing."""
    session = get_session()
    yield session
    session.rollback()
    session.close()


@pytest.fixture(scope='function')
def catalog(session):
    """Two stores, a taxed and an untaxed category, products and stock.

    Returns plain ids and values; ORM instances expire when requests
    close the scoped session.
    """
    store = Store(store_code='SR1', name='Central Store', location='Main Street')
    other_store = Store(store_code='SR2', name='Mall Store', location='City Mall')
    clothing = Category(name='Clothing')
    books = Category(name='Books')
    session.add_all([store, other_store, clothing, books])
    session.flush()

    session.add(TaxRule(name='GST', category_id=clothing.id, kind=TaxKind.PERCENTAGE, value=Decimal('18')))

    shirt = Product(name='Shirt', price=Decimal('100.00'), category_id=clothing.id)
    jeans = Product(name='Jeans', price=Decimal('250.00'), category_id=clothing.id)
    novel = Product(name='Novel', price=Decimal('40.00'), category_id=books.id)
    session.add_all([shirt, jeans, novel])
    session.flush()

    session.add_all([
        InventoryRecord(store_id=store.id, product_id=shirt.id, category_id=clothing.id, quantity=10),
        InventoryRecord(store_id=store.id, product_id=jeans.id, category_id=clothing.id, quantity=1),
        InventoryRecord(store_id=store.id, product_id=novel.id, category_id=books.id, quantity=5),
        InventoryRecord(store_id=other_store.id, product_id=shirt.id, category_id=clothing.id, quantity=3),
    ])

    ids = SimpleNamespace(
        store_id=store.id,
        other_store_id=other_store.id,
        clothing_id=clothing.id,
        books_id=books.id,
        shirt_id=shirt.id,
        jeans_id=jeans.id,
        novel_id=novel.id,
    )
    session.commit()
    return ids


@pytest.fixture(scope='function')
def sent_emails(monkeypatch):
    """Capture outgoing mail instead of talking to SMTP."""
    outbox = []

    def fake_send(to, subject, text, html=None, attachments=None):
        outbox.append({
            'to': to,
            'subject': subject,
            'text': text,
            'html': html,
            'attachments': attachments or [],
        })
        return True

    monkeypatch.setattr('pos_billing.services.invoice_delivery.send_email_with_attachments', fake_send)
    monkeypatch.setattr('pos_billing.services.marketing_service.send_email_with_attachments', fake_send)
    return outbox


@pytest.fixture(scope='function')
def stock(session):
    """Read the current quantity of a (store, product) straight from the database."""
    def read(store_id, product_id):
        session.expire_all()
        return session.query(InventoryRecord.quantity).filter(
            InventoryRecord.store_id == store_id,
            InventoryRecord.product_id == product_id,
        ).scalar()
    return read
