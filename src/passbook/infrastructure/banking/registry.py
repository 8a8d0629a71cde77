"""Registry mapping bank ids to adapter factories."""

from __future__ import annotations

import logging
from typing import Callable

from passbook.domain.banking.exceptions import UnknownBankError
from passbook.domain.banking.ports import BankAdapterPort
from passbook.domain.banking.value_objects import BrowserContext
from passbook.infrastructure.banking.adapters import (
    AmericanExpressAdapter,
    BankOfAmericaAdapter,
    FidelityAdapter,
    QuestradeAdapter,
    TdBankAdapter,
)
from passbook.infrastructure.banking.http_client import BankHttpClient

logger = logging.getLogger(__name__)

AdapterFactory = Callable[[BrowserContext, BankHttpClient | None], BankAdapterPort]


class BankAdapterRegistry:
    """Creates adapters by their stable ``bank_id``."""

    def __init__(self) -> None:
        self._factories: dict[str, AdapterFactory] = {}

    def register(self, bank_id: str, factory: AdapterFactory) -> None:
        if bank_id in self._factories:
            msg = f"Adapter already registered for bank '{bank_id}'"
            raise ValueError(msg)
        self._factories[bank_id] = factory

    def bank_ids(self) -> list[str]:
        return sorted(self._factories)

    def __contains__(self, bank_id: object) -> bool:
        return bank_id in self._factories

    def create(
        self,
        bank_id: str,
        context: BrowserContext,
        http: BankHttpClient | None = None,
    ) -> BankAdapterPort:
        factory = self._factories.get(bank_id)
        if factory is None:
            raise UnknownBankError(bank_id)
        logger.debug("Creating adapter for %s", bank_id)
        return factory(context, http)


def default_registry() -> BankAdapterRegistry:
    """Registry with every built-in adapter."""
    registry = BankAdapterRegistry()
    registry.register("american_express", AmericanExpressAdapter)
    registry.register("bank_of_america", BankOfAmericaAdapter)
    registry.register("fidelity", FidelityAdapter)
    registry.register("questrade", QuestradeAdapter)
    registry.register("td_bank", TdBankAdapter)
    return registry
