from nsbundle_config.entitlements import ICLOUD_ENTITLEMENT_KEYS, configure_entitlements
from nsbundle_config.types import (
    BuildMeta,
    Published,
    ServiceContext,
    ServiceData,
    UserContext,
    UserData,
)


def _service_ctx(manifest: dict, configuration: str = "Release") -> ServiceContext:
    return ServiceContext(
        config=manifest,
        published=Published(url="https://exp.host/@me/app"),
        data=ServiceData(manifest=manifest),
        build=BuildMeta(configuration=configuration),
    )


def _base_entitlements() -> dict:
    ent = {key: ["iCloud.com.foo"] for key in ICLOUD_ENTITLEMENT_KEYS}
    ent["com.apple.developer.associated-domains"] = ["applinks:exp.host"]
    ent["com.apple.developer.in-app-payments"] = ["merchant.com.foo"]
    ent["keychain-access-groups"] = ["TEAM.com.foo"]
    return ent


def test_release_build_uses_production_push_environment() -> None:
    out = configure_entitlements({}, _service_ctx({}, "Release"))
    assert out["aps-environment"] == "production"


def test_debug_build_uses_development_push_environment() -> None:
    out = configure_entitlements({}, _service_ctx({}, "Debug"))
    assert out["aps-environment"] == "development"


def test_removes_icloud_associated_domains_and_payments_by_default() -> None:
    ent = _base_entitlements()

    out = configure_entitlements(ent, _service_ctx({}))

    for key in ICLOUD_ENTITLEMENT_KEYS:
        assert key not in out
    assert "com.apple.developer.associated-domains" not in out
    assert "com.apple.developer.in-app-payments" not in out
    assert out["keychain-access-groups"] == ["TEAM.com.foo"]
    assert "com.apple.developer.in-app-payments" in ent


def test_keeps_icloud_and_sets_declared_associated_domains() -> None:
    manifest = {"ios": {"usesIcloudStorage": True, "associatedDomains": ["applinks:foo.com"]}}

    out = configure_entitlements(_base_entitlements(), _service_ctx(manifest))

    for key in ICLOUD_ENTITLEMENT_KEYS:
        assert out[key] == ["iCloud.com.foo"]
    assert out["com.apple.developer.associated-domains"] == ["applinks:foo.com"]
    assert "com.apple.developer.in-app-payments" not in out


def test_user_context_is_left_untouched() -> None:
    ent = _base_entitlements()
    ctx = UserContext(
        config={},
        published=Published(url="https://exp.host/@me/app"),
        data=UserData(exp={}, project_path="/tmp/p"),
    )
    assert configure_entitlements(ent, ctx) == ent


def test_non_list_associated_domains_are_copied_as_declared() -> None:
    manifest = {"ios": {"associatedDomains": "applinks:foo.com"}}

    out = configure_entitlements({}, _service_ctx(manifest))

    assert out["com.apple.developer.associated-domains"] == "applinks:foo.com"
