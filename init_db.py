#!/usr/bin/env python3
"""Initialize the database with sample data"""

from stayhub import create_app, db
from stayhub.seed_data import seed_database
import os


def init_database():
    """Initialize database with tables and sample data"""
    app = create_app(os.getenv('FLASK_ENV', 'development'))

    with app.app_context():
        db.create_all()
        app.logger.info("Database tables created")

        seed_database()


if __name__ == '__main__':
    init_database()
