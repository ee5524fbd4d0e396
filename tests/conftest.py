"""
Pytest fixtures for testing
"""
from datetime import date

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session

from hourbook.auth import hash_password
from hourbook.infrastructure.db.session import Base
from hourbook.infrastructure.db.models import User, Project, Category, TimeEntry


def enable_foreign_keys(engine):
    """SQLite leaves foreign keys unenforced unless asked on every connection"""

    @event.listens_for(engine, "connect")
    def _foreign_keys_on(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


@pytest.fixture
def db_engine():
    """In-memory SQLite engine with all tables created"""
    engine = enable_foreign_keys(create_engine("sqlite:///:memory:"))
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine) -> Session:
    """Create database session for tests"""
    SessionLocal = sessionmaker(bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def file_engine(tmp_path):
    """
    File-backed SQLite engine usable from several threads.

    Every transaction starts with BEGIN IMMEDIATE, so concurrent writers
    queue on the database lock instead of failing on lock upgrade.
    """
    engine = create_engine(
        f"sqlite:///{tmp_path / 'hourbook.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    enable_foreign_keys(engine)

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


# ── factories ──

@pytest.fixture
def make_user():
    def _make(db, username="alice", role="user", status="active", password="secret-pass"):
        user = User(
            username=username,
            password_hash=hash_password(password),
            name=username.capitalize(),
            email=f"{username}@example.com",
            login_method="local",
            role=role,
            status=status,
        )
        db.add(user)
        db.commit()
        return user
    return _make


@pytest.fixture
def make_project():
    def _make(db, name="Alpha", hourly_rate=15000, total_quota_hours=50,
              warning_threshold=80, year=2025, vat_type="exclusive", status="active"):
        project = Project(
            name=name,
            hourly_rate=hourly_rate,
            vat_type=vat_type,
            total_quota_hours=total_quota_hours,
            warning_threshold=warning_threshold,
            year=year,
            status=status,
        )
        db.add(project)
        db.commit()
        return project
    return _make


@pytest.fixture
def make_category():
    def _make(db, code="GF", name="Management"):
        category = Category(code=code, name=name)
        db.add(category)
        db.commit()
        return category
    return _make


@pytest.fixture
def make_entry():
    def _make(db, user, project, category, day=date(2025, 11, 3), hours=100,
              start_time=None, end_time=None, description=None):
        entry = TimeEntry(
            user_id=user.id,
            project_id=project.id,
            category_id=category.id,
            date=day,
            start_time=start_time,
            end_time=end_time,
            duration_hours=hours,
            description=description,
        )
        db.add(entry)
        db.commit()
        return entry
    return _make


@pytest.fixture
def admin(db_session, make_user):
    return make_user(db_session, username="admin", role="admin")


@pytest.fixture
def alice(db_session, make_user):
    return make_user(db_session, username="alice")


@pytest.fixture
def bob(db_session, make_user):
    return make_user(db_session, username="bob")


@pytest.fixture
def project(db_session, make_project):
    return make_project(db_session)


@pytest.fixture
def category(db_session, make_category):
    return make_category(db_session)
