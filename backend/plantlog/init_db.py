import logging

from plantlog.database import Base, engine

# Import all models to ensure they are registered with SQLAlchemy
from plantlog.models.day import DailyData, FeederReading, TurbineReading  # noqa: F401
from plantlog.models.profile import Profile  # noqa: F401

logger = logging.getLogger(__name__)


def init_db(bind=engine):
    """Create the profiles, daily_data, feeders and turbines tables if missing."""
    Base.metadata.create_all(bind=bind)
    logger.info("Database tables ready: %s", ", ".join(sorted(Base.metadata.tables)))


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_db()
