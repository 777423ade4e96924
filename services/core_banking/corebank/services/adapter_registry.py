"""
Adapter registry: resolves a config's vendor type to an adapter.

Unknown and custom vendor types resolve to the first-registered (baseline)
adapter, so resolution never fails once anything is registered.
"""
from typing import Dict, List, Optional

from corebank.services.core_banking_adapters import (
    CoreBankingAdapter,
    FinastraAdapter,
    MambuAdapter,
    TemenosAdapter,
    ThoughtMachineAdapter,
)


class AdapterRegistry:
    def __init__(self):
        self._adapters: Dict[str, CoreBankingAdapter] = {}
        self._baseline: Optional[CoreBankingAdapter] = None

    def register(self, adapter: CoreBankingAdapter, core_type: Optional[str] = None) -> None:
        key = (core_type or adapter.core_type).strip().lower()
        self._adapters[key] = adapter
        if self._baseline is None:
            self._baseline = adapter

    def resolve(self, core_type: Optional[str]) -> CoreBankingAdapter:
        if self._baseline is None:
            raise LookupError("No core banking adapters registered")
        key = (core_type or "").strip().lower()
        return self._adapters.get(key, self._baseline)

    @property
    def baseline(self) -> Optional[CoreBankingAdapter]:
        return self._baseline

    @property
    def core_types(self) -> List[str]:
        return list(self._adapters)


def build_default_registry() -> AdapterRegistry:
    registry = AdapterRegistry()
    # Registration order matters: temenos is the baseline
    registry.register(TemenosAdapter())
    registry.register(FinastraAdapter())
    registry.register(MambuAdapter())
    registry.register(ThoughtMachineAdapter())
    return registry


# Global registry instance; adapters are stateless and shared
adapter_registry = build_default_registry()
