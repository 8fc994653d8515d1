"""
InfoSec Tools
Database handle shared by every model module.

Usage:
    from infosec_tools.models import db
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
