"""
Script to initialize the database tables.
Run this after setting up the database for the first time.
Pass --seed to add a sample project and employee for local testing.
"""
import sys
from app.core.database import engine, Base, SessionLocal
from app.models import Employee, Project
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def init_db():
    """Initialize database tables."""
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("✅ Database tables created successfully!")
    except Exception as e:
        logger.error(f"❌ Error creating database tables: {e}")
        raise


def seed_sample_data():
    """Create one project site and one worker if the tables are empty."""
    db = SessionLocal()
    try:
        if db.query(Project).count() == 0:
            db.add(Project(
                name="Marina Bay Site",
                address="Marina Bay, Singapore",
                latitude=1.2834,
                longitude=103.8607,
                geofence_radius=150.0,
                timezone="Asia/Singapore"
            ))
        if db.query(Employee).count() == 0:
            db.add(Employee(full_name="Sample Worker", email="worker@example.com"))
        db.commit()
        logger.info("✅ Sample project and employee ready")
    finally:
        db.close()


if __name__ == "__main__":
    init_db()
    if "--seed" in sys.argv:
        seed_sample_data()
