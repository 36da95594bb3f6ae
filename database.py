#!/usr/bin/env python3
"""
Database models and configuration for the storefront.
Handles the relational store for users, apps, versions, screenshots,
purchases and reviews.
"""

import os
from datetime import datetime, timezone
import logging

from sqlalchemy import (
    create_engine, event, Column, Integer, BigInteger, String, DateTime, Text,
    Float, ForeignKey, UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, sessionmaker, relationship
from sqlalchemy.pool import StaticPool

logger = logging.getLogger('storefront.database')

# Database URL - point this at PostgreSQL in production
DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///storefront.db')

ROLES = ('user', 'developer', 'admin')
APP_STATUSES = ('draft', 'review', 'approved', 'rejected')

Base = declarative_base()
engine = None
SessionLocal = None


def _utcnow():
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


def configure(url: str = None, echo: bool = False):
    """(Re)bind the module-level engine and session factory to *url*.

    In-memory SQLite URLs share a single connection so every session sees
    the same database.
    """
    global engine, SessionLocal, DATABASE_URL
    DATABASE_URL = url or DATABASE_URL
    kwargs = {'echo': echo}
    if DATABASE_URL.startswith('sqlite'):
        kwargs['connect_args'] = {'check_same_thread': False}
        if DATABASE_URL in ('sqlite://', 'sqlite:///:memory:'):
            kwargs['poolclass'] = StaticPool
    engine = create_engine(DATABASE_URL, **kwargs)
    if engine.dialect.name == 'sqlite':
        event.listen(engine, 'connect', _enable_sqlite_foreign_keys)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    return engine


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute('PRAGMA foreign_keys=ON')
    cursor.close()


class User(Base):
    """Account holder: plain user, developer or admin."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False)
    password = Column(String(255), nullable=False)  # werkzeug password hash
    role = Column(String(20), default='user', nullable=False)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    # Relationships
    apps = relationship("App", back_populates="developer")
    purchases = relationship("Purchase", back_populates="user", cascade="all, delete-orphan")
    reviews = relationship("Review", back_populates="user", cascade="all, delete-orphan")

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'name': self.name,
            'role': self.role,
            'createdAt': _iso(self.created_at),
        }


class App(Base):
    """A listing in the catalog, owned by exactly one developer."""
    __tablename__ = "apps"

    id = Column(Integer, primary_key=True)
    developer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, index=True, nullable=False)
    description = Column(Text, nullable=False)
    category = Column(String(100), index=True, nullable=False)
    price = Column(Float, default=0.0, nullable=False)
    status = Column(String(20), default='draft', index=True, nullable=False)  # see APP_STATUSES
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    # Relationships
    developer = relationship("User", back_populates="apps")
    versions = relationship("AppVersion", back_populates="app", cascade="all, delete-orphan",
                            order_by="AppVersion.id")
    screenshots = relationship("Screenshot", back_populates="app", cascade="all, delete-orphan",
                               order_by="Screenshot.order_index")
    purchases = relationship("Purchase", back_populates="app", cascade="all, delete-orphan")
    reviews = relationship("Review", back_populates="app", cascade="all, delete-orphan")

    def to_dict(self, screenshot_limit: int = None):
        shots = self.screenshots if screenshot_limit is None else self.screenshots[:screenshot_limit]
        return {
            'id': self.id,
            'developerId': self.developer_id,
            'developer': {'name': self.developer.name if self.developer else None},
            'title': self.title,
            'slug': self.slug,
            'description': self.description,
            'category': self.category,
            'price': round(float(self.price or 0), 2),
            'status': self.status,
            'screenshots': [s.to_dict() for s in shots],
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }


class AppVersion(Base):
    """A downloadable build of an app. Append-only."""
    __tablename__ = "app_versions"

    id = Column(Integer, primary_key=True)
    app_id = Column(Integer, ForeignKey("apps.id"), nullable=False, index=True)
    version = Column(String(50), nullable=False)
    file_url = Column(String(1000), nullable=False)
    changelog = Column(Text, default='')
    size = Column(BigInteger, default=0)
    checksum = Column(String(128), default='')
    created_at = Column(DateTime, default=_utcnow)

    app = relationship("App", back_populates="versions")

    def to_dict(self):
        return {
            'id': self.id,
            'appId': self.app_id,
            'version': self.version,
            'fileUrl': self.file_url,
            'changelog': self.changelog,
            'size': self.size,
            'checksum': self.checksum,
            'createdAt': _iso(self.created_at),
        }


class Screenshot(Base):
    """Ordered screenshot of an app."""
    __tablename__ = "screenshots"

    id = Column(Integer, primary_key=True)
    app_id = Column(Integer, ForeignKey("apps.id"), nullable=False, index=True)
    file_url = Column(String(1000), nullable=False)
    order_index = Column(Integer, default=0, nullable=False)

    app = relationship("App", back_populates="screenshots")

    def to_dict(self):
        return {
            'id': self.id,
            'appId': self.app_id,
            'fileUrl': self.file_url,
            'orderIndex': self.order_index,
        }


class Purchase(Base):
    """Entitlement record: at most one per (user, app)."""
    __tablename__ = "purchases"
    __table_args__ = (
        UniqueConstraint('user_id', 'app_id', name='uq_purchases_user_app'),
    )

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    app_id = Column(Integer, ForeignKey("apps.id"), nullable=False, index=True)
    amount = Column(Float, default=0.0, nullable=False)
    currency = Column(String(10), default='usd', nullable=False)
    payment_ref = Column(String(255), unique=True, nullable=True)  # None for free claims
    created_at = Column(DateTime, default=_utcnow)

    user = relationship("User", back_populates="purchases")
    app = relationship("App", back_populates="purchases")

    def to_dict(self, include_app: bool = False):
        data = {
            'id': self.id,
            'userId': self.user_id,
            'appId': self.app_id,
            'amount': round(float(self.amount or 0), 2),
            'currency': self.currency,
            'paymentRef': self.payment_ref,
            'createdAt': _iso(self.created_at),
        }
        if include_app and self.app is not None:
            data['app'] = self.app.to_dict(screenshot_limit=1)
        return data


class Review(Base):
    """One rating per (user, app), only for owners of the app."""
    __tablename__ = "reviews"
    __table_args__ = (
        UniqueConstraint('user_id', 'app_id', name='uq_reviews_user_app'),
    )

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    app_id = Column(Integer, ForeignKey("apps.id"), nullable=False, index=True)
    rating = Column(Integer, nullable=False)  # 1-5
    text = Column(Text, nullable=False)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    user = relationship("User", back_populates="reviews")
    app = relationship("App", back_populates="reviews")

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'appId': self.app_id,
            'rating': self.rating,
            'text': self.text,
            'user': {'name': self.user.name if self.user else None},
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }


def get_db():
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Initialize database tables."""
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables initialized successfully")
        return True
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        return False


configure()
