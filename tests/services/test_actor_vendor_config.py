"""
Reference-data services: role administration, vendors, approval threshold.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from purchasing_kernel.domain.roles import Role
from purchasing_kernel.exceptions import (
    ActorNotFoundError,
    AuthorizationError,
    ValidationError,
    VendorNotFoundError,
)
from purchasing_kernel.services.actor_service import ActorService
from purchasing_kernel.services.config_service import ConfigService
from purchasing_kernel.services.vendor_service import VendorService


@pytest.fixture
def actor_service(session, deterministic_clock):
    return ActorService(session, deterministic_clock)


@pytest.fixture
def vendor_service(session, deterministic_clock):
    return VendorService(session, deterministic_clock)


@pytest.fixture
def config_service(session, deterministic_clock):
    return ConfigService(session, deterministic_clock)


class TestSetUserRole:

    def test_admin_changes_role(self, actor_service, admin, requester, status_log):
        updated = actor_service.set_user_role(requester, "Purchasing", admin, "new hire")

        assert updated.role is Role.PURCHASING
        entries = status_log.for_entity("profile", requester)
        assert len(entries) == 1
        assert (entries[0].from_status, entries[0].to_status) == ("user", "purchasing")
        assert entries[0].message == "new hire"

    def test_non_admin_denied(self, actor_service, executive, requester, status_log):
        with pytest.raises(AuthorizationError):
            actor_service.set_user_role(requester, Role.EXECUTIVE, executive)
        assert status_log.for_entity("profile", requester) == []

    def test_unknown_role(self, actor_service, admin, requester):
        with pytest.raises(ValidationError):
            actor_service.set_user_role(requester, "superuser", admin)

    def test_unknown_target(self, actor_service, admin):
        with pytest.raises(ActorNotFoundError):
            actor_service.set_user_role(uuid4(), Role.USER, admin)

    def test_require_actor(self, actor_service, requester, db_engine):
        assert actor_service.require_actor(requester).id == requester
        with pytest.raises(ActorNotFoundError):
            actor_service.require_actor(uuid4())


class TestUpsertVendor:

    def test_create(self, vendor_service, requester, status_log):
        vendor = vendor_service.upsert_vendor(
            requester, name="  Ready Mix Co ", trade="Concrete", city="Dallas"
        )

        assert vendor.name == "Ready Mix Co"
        assert vendor.trade == "Concrete"
        assert vendor.is_active
        entries = status_log.for_entity("vendor", vendor.id)
        assert [e.message for e in entries] == ["Vendor created"]

    def test_name_required(self, vendor_service, requester):
        with pytest.raises(ValidationError):
            vendor_service.upsert_vendor(requester, name="  ")

    def test_partial_update(self, vendor_service, requester, status_log):
        vendor = vendor_service.upsert_vendor(requester, name="Steel Co", phone="555-0100", city="Tulsa")

        updated = vendor_service.upsert_vendor(requester, vendor.id, phone=None, is_active=False)

        assert updated.phone is None
        assert updated.city == "Tulsa"
        assert not updated.is_active
        last = status_log.for_entity("vendor", vendor.id)[-1]
        assert last.message == "Vendor updated"
        assert set(last.metadata["changed"]) == {"phone", "is_active"}

    def test_unknown_vendor(self, vendor_service, requester):
        with pytest.raises(VendorNotFoundError):
            vendor_service.upsert_vendor(requester, uuid4(), name="Ghost")

    def test_unknown_actor(self, vendor_service, db_engine):
        with pytest.raises(ActorNotFoundError):
            vendor_service.upsert_vendor(uuid4(), name="Nobody's Vendor")


class TestApprovalThreshold:

    def test_default_when_unset(self, config_service, db_engine):
        assert config_service.get_approval_policy().threshold == Decimal("1000")

    def test_admin_sets_threshold(self, config_service, admin):
        config_service.set_approval_threshold(admin, "2500")
        assert config_service.get_approval_policy().threshold == Decimal("2500")

    def test_update_existing_threshold(self, config_service, admin):
        config_service.set_approval_threshold(admin, "2500")
        config_service.set_approval_threshold(admin, "750")
        assert config_service.get_approval_policy().threshold == Decimal("750")

    def test_non_admin_denied(self, config_service, executive):
        with pytest.raises(AuthorizationError):
            config_service.set_approval_threshold(executive, "1")

    def test_negative_rejected(self, config_service, admin):
        with pytest.raises(ValidationError):
            config_service.set_approval_threshold(admin, "-5")
