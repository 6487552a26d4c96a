"""Database configuration and initialization."""
from sqlalchemy import create_engine, BigInteger, Integer
from sqlalchemy.orm import scoped_session, sessionmaker, declarative_base

# Create SQLAlchemy base
Base = declarative_base()

# SQLite only autoincrements INTEGER primary keys
BigIntId = BigInteger().with_variant(Integer(), 'sqlite')

# Global session and engine
engine = None
db_session = None


def _engine_options(app) -> dict:
    """Build create_engine kwargs for the configured backend."""
    options = {
        'echo': app.config.get('SQLALCHEMY_ECHO', False),
        'pool_pre_ping': True,  # Enable connection health checks
    }
    if not app.config['SQLALCHEMY_DATABASE_URI'].startswith('sqlite'):
        options['pool_size'] = app.config.get('SQLALCHEMY_POOL_SIZE', 10)
        options['max_overflow'] = app.config.get('SQLALCHEMY_MAX_OVERFLOW', 20)
    return options


def init_db(app):
    """Initialize database connection."""
    global engine, db_session

    database_uri = app.config['SQLALCHEMY_DATABASE_URI']
    engine = create_engine(database_uri, **_engine_options(app))

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


def create_all():
    """Create every mapped table (used by `flask init-db` and tests)."""
    import stockledger.models  # noqa: F401 - register mappers
    Base.metadata.create_all(bind=engine)


def drop_all():
    """Drop every mapped table."""
    import stockledger.models  # noqa: F401
    Base.metadata.drop_all(bind=engine)


def get_session():
    """Get database session."""
    return db_session


def new_session():
    """Open an independent session on the shared engine (outside the scoped registry)."""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)()
