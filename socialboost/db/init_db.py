from socialboost.db.session import engine
from socialboost.db.base import Base


def init_db(bind=engine):
    """Create all tables registered on Base.metadata."""
    # Importing the models package registers every table on Base.metadata
    import socialboost.db.models  # noqa: F401

    Base.metadata.create_all(bind=bind)


if __name__ == "__main__":
    init_db()
