"""Exception hierarchy for the worldable package."""

from typing import Optional


class WorldableError(Exception):
    """Base class for all worldable errors."""


class InvalidComponentError(WorldableError):
    """Raised when a component name is not part of the registry."""

    def __init__(self, component: str, valid: Optional[list[str]] = None):
        self.component = component
        self.valid = valid or []
        message = f"Invalid component: {component}"
        if self.valid:
            message += f" (valid components: {', '.join(self.valid)})"
        super().__init__(message)


class InvalidStrategyError(WorldableError):
    """Raised when an uninstall strategy is not one of nullify, block, cascade."""

    def __init__(self, strategy: str, valid: tuple[str, ...]):
        self.strategy = strategy
        super().__init__(f"Invalid strategy: {strategy} (valid strategies: {', '.join(valid)})")


class DependencyNotInstalledError(WorldableError):
    """Raised when a relationship needs a component whose table is missing."""

    def __init__(self, model: str, relationship: str, missing_component: str):
        self.model = model
        self.relationship = relationship
        self.missing_component = missing_component
        message = (
            f"Cannot access '{relationship}' relationship on {model}.\n\n"
            f"The '{missing_component}' component is not installed.\n\n"
            "To resolve this:\n"
            f"  1. Install the component: worldable install --{missing_component}\n"
            "  2. Link existing data: worldable link\n"
            "  3. Check status: worldable health\n"
        )
        super().__init__(message)


class WorldablesTableMissingError(WorldableError):
    """Raised when an attachment operation runs before the pivot table exists."""

    def __init__(self, table: str):
        self.table = table
        super().__init__(
            f"The '{table}' table does not exist. "
            "Please run 'worldable install --worldables' to create the worldables pivot table."
        )


class DatasetFetchError(WorldableError):
    """Raised when a remote dataset cannot be downloaded or decompressed."""

    def __init__(self, message: str, url: Optional[str] = None, status_code: Optional[int] = None):
        self.url = url
        self.status_code = status_code
        super().__init__(message)


class SeedingError(WorldableError):
    """Raised when a seeder cannot complete for a component."""

    def __init__(self, component: str, message: str):
        self.component = component
        super().__init__(f"Failed to install {component}: {message}")


class ProvisioningError(WorldableError):
    """Raised when a component's table cannot be created."""

    def __init__(self, component: str, table: str, message: str):
        self.component = component
        self.table = table
        super().__init__(f"Failed to create {table} for {component}: {message}")


class UninstallBlockedError(WorldableError):
    """Raised by the block strategy when dependent rows exist."""

    def __init__(self, component: str, dependents: dict[str, int]):
        self.component = component
        self.dependents = dependents
        listing = ", ".join(f"{name} ({count} records)" for name, count in dependents.items())
        message = (
            f"Cannot uninstall '{component}' with --strategy=block when dependent data exists: {listing}\n"
            "Options:\n"
            "  1. Use --strategy=nullify to nullify foreign keys\n"
            "  2. Use --strategy=cascade to also remove dependent data\n"
            "  3. Manually clean up dependent data first"
        )
        super().__init__(message)
