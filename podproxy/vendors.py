import os
from dataclasses import dataclass
from typing import Iterator, Mapping

from podproxy.config import Settings, settings as default_settings


@dataclass(frozen=True)
class VendorConfig:
    name: str           # lower-case, used in error codes and logs
    prefix: str         # route segment after /api/
    base_url: str
    token_env: str
    account_env: str    # shop/store id; presence is reported, never used for routing
    account_flag: str

    @property
    def presence_flag(self) -> str:
        return f"has{self.name.capitalize()}"


def default_vendors(settings: Settings = default_settings) -> list[VendorConfig]:
    return [
        VendorConfig(
            name="printify",
            prefix="printify",
            base_url=settings.printify_base_url,
            token_env="PRINTIFY_TOKEN",
            account_env="PRINTIFY_SHOP_ID",
            account_flag="printifyShopIdSet",
        ),
        VendorConfig(
            name="printful",
            prefix="printful",
            base_url=settings.printful_base_url,
            token_env="PRINTFUL_TOKEN",
            account_env="PRINTFUL_STORE_ID",
            account_flag="printfulStoreIdSet",
        ),
    ]


class VendorRegistry:
    """Route prefix -> vendor. Credentials are looked up in ``env`` on every call."""

    def __init__(self, vendors: list[VendorConfig], env: Mapping[str, str] | None = None):
        self._vendors = {v.prefix: v for v in vendors}
        self._env = os.environ if env is None else env

    def resolve(self, prefix: str) -> VendorConfig | None:
        return self._vendors.get(prefix)

    def credential(self, vendor: VendorConfig) -> str | None:
        return self._env.get(vendor.token_env) or None

    def presence_flags(self) -> dict[str, bool]:
        flags: dict[str, bool] = {}
        for vendor in self._vendors.values():
            flags[vendor.presence_flag] = bool(self._env.get(vendor.token_env))
        for vendor in self._vendors.values():
            flags[vendor.account_flag] = bool(self._env.get(vendor.account_env))
        return flags

    def __iter__(self) -> Iterator[VendorConfig]:
        return iter(self._vendors.values())
