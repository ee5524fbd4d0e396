"""Tests for project use cases and quota usage reads"""
from decimal import Decimal

import pytest

from hourbook.application.projects import (
    CreateProjectUseCase, UpdateProjectUseCase, DeleteProjectUseCase,
    CloneProjectUseCase, ProjectReadService,
)
from hourbook.application.invoices import InvoiceGenerator
from hourbook.application.quotas import UpsertQuotaUseCase
from hourbook.errors import ValidationError, NotFoundError, ConflictError
from hourbook.infrastructure.db.models import Project, TimeEntry, UserProjectQuota, AuditLog


class TestCreate:
    def test_create(self, db_session, admin):
        project_id = CreateProjectUseCase(db_session).execute(
            actor_id=admin.id, name="  Alpha ", hourly_rate="150,50",
            vat_type="exclusive", total_quota_hours=50, year=2025,
        )
        project = db_session.get(Project, project_id)
        assert project.name == "Alpha"
        assert project.hourly_rate == 15050
        assert project.warning_threshold == 80
        assert project.status == "active"

    def test_audited(self, db_session, admin):
        project_id = CreateProjectUseCase(db_session).execute(
            actor_id=admin.id, name="Alpha", hourly_rate="100",
            vat_type="inclusive", total_quota_hours=10, year=2025,
        )
        log = db_session.query(AuditLog).filter(AuditLog.action == "project.created").one()
        assert log.entity_id == project_id
        assert log.user_id == admin.id

    @pytest.mark.parametrize("field,value", [
        ("name", " "),
        ("hourly_rate", "1.234"),
        ("vat_type", "none"),
        ("total_quota_hours", -1),
        ("warning_threshold", 101),
        ("year", 2019),
        ("status", "deleted"),
    ])
    def test_invalid_values(self, db_session, admin, field, value):
        kwargs = dict(
            actor_id=admin.id, name="Alpha", hourly_rate="100",
            vat_type="exclusive", total_quota_hours=10, year=2025,
        )
        kwargs[field] = value
        with pytest.raises(ValidationError):
            CreateProjectUseCase(db_session).execute(**kwargs)
        assert db_session.query(Project).count() == 0


class TestUpdate:
    def test_partial_update(self, db_session, admin, project):
        UpdateProjectUseCase(db_session).execute(project.id, admin.id, hourly_rate="200", status="archived")
        db_session.refresh(project)
        assert project.hourly_rate == 20000
        assert project.status == "archived"
        assert project.name == "Alpha"

    def test_invalid_change_leaves_row(self, db_session, admin, project):
        with pytest.raises(ValidationError):
            UpdateProjectUseCase(db_session).execute(project.id, admin.id, name="Beta", vat_type="x")
        db_session.refresh(project)
        assert project.name == "Alpha"

    def test_unknown_field(self, db_session, admin, project):
        with pytest.raises(ValidationError, match="Unknown field"):
            UpdateProjectUseCase(db_session).execute(project.id, admin.id, id=5)

    @pytest.mark.parametrize("field", ["name", "hourly_rate", "total_quota_hours", "warning_threshold", "year"])
    def test_null_value_rejected(self, db_session, admin, project, field):
        with pytest.raises(ValidationError, match="must not be null"):
            UpdateProjectUseCase(db_session).execute(project.id, admin.id, **{field: None})
        db_session.refresh(project)
        assert project.total_quota_hours == 50

    def test_missing(self, db_session, admin):
        with pytest.raises(NotFoundError):
            UpdateProjectUseCase(db_session).execute(999, admin.id, name="X")


class TestDelete:
    def test_refused_with_entries(self, db_session, admin, alice, project, category, make_entry):
        make_entry(db_session, alice, project, category)
        with pytest.raises(ConflictError, match="Archive"):
            DeleteProjectUseCase(db_session).execute(project.id, admin.id)
        assert db_session.get(Project, project.id) is not None

    def test_succeeds_after_entries_removed(self, db_session, admin, alice, project, category, make_entry):
        entry = make_entry(db_session, alice, project, category)
        db_session.delete(entry)
        db_session.commit()

        DeleteProjectUseCase(db_session).execute(project.id, admin.id)
        assert db_session.get(Project, project.id) is None

    def test_refused_while_invoiced(self, db_session, admin, alice, project, category, make_entry):
        entry = make_entry(db_session, alice, project, category)
        InvoiceGenerator(db_session).generate(alice.id, 11, 2025, "Acme AG")
        db_session.delete(entry)
        db_session.commit()

        with pytest.raises(ConflictError, match="invoices"):
            DeleteProjectUseCase(db_session).execute(project.id, admin.id)
        assert db_session.get(Project, project.id) is not None

    def test_removes_quota_overrides(self, db_session, admin, alice, project):
        UpsertQuotaUseCase(db_session).execute(admin.id, alice.id, project.id, 20)
        DeleteProjectUseCase(db_session).execute(project.id, admin.id)
        assert db_session.query(UserProjectQuota).count() == 0


class TestClone:
    def test_clone_to_new_year(self, db_session, admin, make_project):
        original = make_project(db_session, name="Alpha", hourly_rate=12000, year=2025, status="archived")

        clone_id = CloneProjectUseCase(db_session).execute(original.id, 2026, admin.id)

        clone = db_session.get(Project, clone_id)
        assert clone.id != original.id
        assert clone.year == 2026
        assert clone.status == "active"
        assert (clone.name, clone.hourly_rate, clone.vat_type, clone.total_quota_hours) == (
            "Alpha", 12000, "exclusive", 50,
        )
        assert db_session.query(AuditLog).filter(AuditLog.action == "project.cloned").count() == 1

    def test_clone_bad_year(self, db_session, admin, project):
        with pytest.raises(ValidationError):
            CloneProjectUseCase(db_session).execute(project.id, 1999, admin.id)


class TestUsage:
    def test_usage_for_user_and_project(self, db_session, alice, bob, project, category, make_entry):
        make_entry(db_session, alice, project, category, hours=4000)
        make_entry(db_session, bob, project, category, hours=1000)

        [(p, usage)] = ProjectReadService(db_session).list_with_usage(alice, year=2025)

        assert p.id == project.id
        assert usage.used_hours == Decimal("40.00")
        assert usage.user_quota_hours == 50
        assert usage.usage_percentage == 80.0
        assert usage.is_warning is True
        assert usage.is_over_quota is False
        assert usage.total_used_hours == Decimal("50.00")
        assert usage.total_usage_percentage == 100.0

    def test_override_applies_to_user_only(self, db_session, admin, alice, bob, project, category, make_entry):
        UpsertQuotaUseCase(db_session).execute(admin.id, alice.id, project.id, 10)
        make_entry(db_session, alice, project, category, hours=1000)

        alice_usage = ProjectReadService(db_session).usage_for(project, alice.id)
        bob_usage = ProjectReadService(db_session).usage_for(project, bob.id)

        assert alice_usage.user_quota_hours == 10
        assert alice_usage.is_over_quota is True
        assert bob_usage.user_quota_hours == 50
        assert bob_usage.used_hours == Decimal("0.00")

    def test_zero_override(self, db_session, admin, alice, project, category, make_entry):
        UpsertQuotaUseCase(db_session).execute(admin.id, alice.id, project.id, 0)
        make_entry(db_session, alice, project, category, hours=100)

        usage = ProjectReadService(db_session).usage_for(project, alice.id)

        assert usage.user_quota_hours == 0
        assert usage.usage_percentage == 0.0

    def test_list_filters(self, db_session, make_project):
        make_project(db_session, name="Old", year=2024)
        make_project(db_session, name="Archived", status="archived")
        make_project(db_session, name="Current")

        reader = ProjectReadService(db_session)
        assert [p.name for p in reader.list(year=2025, status="active")] == ["Current"]
        assert [p.name for p in reader.list(year=2024)] == ["Old"]
