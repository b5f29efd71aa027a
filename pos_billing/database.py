"""Database configuration and initialization."""
from datetime import datetime, timezone

from sqlalchemy import BigInteger, Integer, create_engine
from sqlalchemy.orm import scoped_session, sessionmaker, declarative_base

# Create SQLAlchemy base
Base = declarative_base()

# SQLite only autoincrements INTEGER primary keys
BigIntPK = BigInteger().with_variant(Integer, 'sqlite')

# Primary keys are bound as signed 64-bit integers by every backend
MAX_ID = 2**63 - 1

# Global session and engine
engine = None
db_session = None


def utcnow() -> datetime:
    """Timezone-aware current time used for every persisted timestamp."""
    return datetime.now(timezone.utc)


def _engine_options(app) -> dict:
    database_uri = app.config['SQLALCHEMY_DATABASE_URI']
    options = {
        'echo': app.config.get('SQLALCHEMY_ECHO', False),
        'pool_pre_ping': True,  # Enable connection health checks
    }
    if database_uri.startswith('sqlite'):
        # Writers wait on the database lock instead of failing immediately
        options['connect_args'] = {'check_same_thread': False, 'timeout': 30}
    else:
        options['pool_size'] = 10
        options['max_overflow'] = 20
    return options


def init_db(app):
    """Initialize database connection."""
    global engine, db_session

    engine = create_engine(app.config['SQLALCHEMY_DATABASE_URI'], **_engine_options(app))

    db_session = scoped_session(
        sessionmaker(autocommit=False, autoflush=False, bind=engine)
    )

    Base.query = db_session.query_property()

    # Register teardown
    @app.teardown_appcontext
    def shutdown_session(exception=None):
        """Close database session and rollback on error."""
        if exception:
            db_session.rollback()
        db_session.remove()


def create_tables():
    """Create all tables for the registered models."""
    import pos_billing.models  # noqa: F401
    Base.metadata.create_all(bind=engine)


def drop_tables():
    Base.metadata.drop_all(bind=engine)


def get_session():
    """Get database session."""
    return db_session


def id_in_range(value: int) -> bool:
    """True when value can name a row. Larger ids cannot be bound as parameters."""
    return 0 < value <= MAX_ID


def find_by_id(session, model, ident: int):
    """session.get that reports out-of-range ids as missing rows."""
    if not id_in_range(ident):
        return None
    return session.get(model, ident)
