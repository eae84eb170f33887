from __future__ import annotations

from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from ._collection import ServiceCollection


class Environments:
    """Commonly used environment names."""

    PRODUCTION = "Production"
    DEVELOPMENT = "Development"
    STAGING = "Staging"
    TESTING = "Testing"


class Environment:
    def __init__(self, name: str) -> None:
        self.name = name

    def __repr__(self) -> str:
        return f"Environment(name={self.name!r})"

    def is_production(self) -> bool:
        return self.name == Environments.PRODUCTION

    def is_development(self) -> bool:
        return self.name == Environments.DEVELOPMENT

    def is_staging(self) -> bool:
        return self.name == Environments.STAGING

    def is_testing(self) -> bool:
        return self.name == Environments.TESTING


def add_environment(services: ServiceCollection, environment: Environment) -> None:
    """Register `environment` as the singleton `Environment` service."""
    services.add_singleton_instance(Environment, environment)


def try_add_environment(services: ServiceCollection, environment: Environment) -> None:
    services.try_add_singleton_instance(Environment, environment)
