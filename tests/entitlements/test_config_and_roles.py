"""
Tests for runtime configuration, role parsing and role defaults.
"""

import pytest

from entitlements.config import EntitlementsConfig
from entitlements.errors import UnknownRole
from entitlements.roles import Role, USER_DEFAULT_PERMISSIONS, role_default_permissions


class TestEntitlementsConfig:
    def test_defaults(self):
        config = EntitlementsConfig()
        assert config.lock_timeout_seconds == 5.0
        assert config.audit_page_size == 50
        assert config.catalog_cache_seconds is None

    def test_from_mapping(self):
        config = EntitlementsConfig.from_mapping({"audit_page_size": 10})
        assert config.audit_page_size == 10

    def test_unknown_setting_rejected(self):
        with pytest.raises(ValueError):
            EntitlementsConfig.from_mapping({"page_size": 10})

    @pytest.mark.parametrize("values", [
        {"lock_timeout_seconds": 0},
        {"audit_page_size": -1},
        {"catalog_cache_seconds": 0},
    ])
    def test_invalid_values(self, values):
        with pytest.raises(ValueError):
            EntitlementsConfig.from_mapping(values)

    def test_from_django_settings(self, settings):
        settings.ENTITLEMENTS = {"lock_timeout_seconds": 1.5}
        assert EntitlementsConfig.from_django_settings().lock_timeout_seconds == 1.5


class TestRoles:
    @pytest.mark.parametrize("raw,expected", [
        ("user", Role.USER),
        ("admin", Role.ADMIN),
        (" super-admin ", Role.SUPER_ADMIN),
        (Role.ADMIN, Role.ADMIN),
    ])
    def test_parse(self, raw, expected):
        assert Role.parse(raw) is expected

    @pytest.mark.parametrize("raw", ["manager", "", None, 3, "Admin"])
    def test_unknown_role(self, raw):
        with pytest.raises(UnknownRole):
            Role.parse(raw)

    def test_capabilities(self):
        assert Role.SUPER_ADMIN.is_operator
        assert not Role.ADMIN.is_operator
        assert Role.ADMIN.can_manage_users
        assert not Role.USER.can_manage_users

    def test_default_sets_nest(self, catalog):
        user = role_default_permissions(Role.USER, catalog)
        admin = role_default_permissions(Role.ADMIN, catalog)
        operator = role_default_permissions(Role.SUPER_ADMIN, catalog)
        assert user == USER_DEFAULT_PERMISSIONS
        assert user < admin < operator
        assert operator - admin == catalog.module_derived_permission_keys()
