"""
TechLedger
Database models package.

The shared Flask-SQLAlchemy instance lives here so that every model module
and service can import it without touching the app factory:

    from techledger.models import db
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
