"""
签名权限（`Exponent.entitlements`）变换步骤，仅用于构建服务壳应用。
"""

from __future__ import annotations

from typing import Any

from .steps import Step
from .types import Context, ServiceContext

ICLOUD_ENTITLEMENT_KEYS = (
    "com.apple.developer.icloud-container-identifiers",
    "com.apple.developer.icloud-services",
    "com.apple.developer.ubiquity-container-identifiers",
    "com.apple.developer.ubiquity-kvstore-identifier",
)
ASSOCIATED_DOMAINS_KEY = "com.apple.developer.associated-domains"
IN_APP_PAYMENTS_KEY = "com.apple.developer.in-app-payments"


def configure_entitlements(ent: dict[str, Any], ctx: Context) -> dict[str, Any]:
    """按构建配置与应用声明调整推送、iCloud、关联域名与支付权限。"""
    if not isinstance(ctx, ServiceContext):
        return ent

    manifest = ctx.data.manifest
    ios = manifest.get("ios") if isinstance(manifest.get("ios"), dict) else {}
    out = dict(ent)

    out["aps-environment"] = (
        "production" if ctx.build.configuration == "Release" else "development"
    )

    # 未通过 DocumentPicker 使用 iCloud 存储时移除全部 iCloud 权限。
    if not ios.get("usesIcloudStorage"):
        for key in ICLOUD_ENTITLEMENT_KEYS:
            out.pop(key, None)

    if ios.get("associatedDomains"):
        domains = ios["associatedDomains"]
        out[ASSOCIATED_DOMAINS_KEY] = list(domains) if isinstance(domains, list) else domains
    else:
        out.pop(ASSOCIATED_DOMAINS_KEY, None)

    # TODO: 壳应用支持 Apple Pay 配置后改为保留 merchant id。
    out.pop(IN_APP_PAYMENTS_KEY, None)
    return out


ENTITLEMENTS_STEPS = [Step("configure_entitlements", configure_entitlements)]
