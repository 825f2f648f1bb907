"""
World reference data for applications: continents, subregions, countries,
states, cities, languages, currencies and timezones in a local SQLite
database, with a polymorphic table for attaching any record to them.
"""

__version__ = "0.1.0"

from worldable.config import WorldableSettings, get_settings
from worldable.components import DEFAULT_REGISTRY, ComponentRegistry

from worldable.store import InstallationLedger, WorldDatabase

from worldable.models import (
    City,
    Continent,
    Country,
    Currency,
    InstallationState,
    Language,
    LinkerResult,
    SeedResult,
    State,
    Subregion,
    Timezone,
    WorldableLink,
    WorldEntity,
)

from worldable.installer import DependencyPolicy, Installer, InstallReport, LinkMode
from worldable.uninstaller import Uninstaller
from worldable.linkers import LinkerRegistry
from worldable.health import HealthChecker

from worldable.attachments import Worldable, owners_with, owners_with_any, owners_without
from worldable.entities import get_entity_type, register_entity_type
from worldable.validation import ValidCity, ValidCountry, ValidCurrency, ValidLanguage

from worldable.exceptions import (
    DependencyNotInstalledError,
    InvalidComponentError,
    WorldableError,
    WorldablesTableMissingError,
)

__all__ = [
    # Configuration
    "WorldableSettings",
    "get_settings",
    "ComponentRegistry",
    "DEFAULT_REGISTRY",
    # Database
    "WorldDatabase",
    "InstallationLedger",
    # Models
    "WorldEntity",
    "Continent",
    "Subregion",
    "Country",
    "State",
    "City",
    "Language",
    "Currency",
    "Timezone",
    "WorldableLink",
    "InstallationState",
    "LinkerResult",
    "SeedResult",
    # Install / uninstall / link
    "Installer",
    "InstallReport",
    "DependencyPolicy",
    "LinkMode",
    "Uninstaller",
    "LinkerRegistry",
    "HealthChecker",
    # Attachments
    "Worldable",
    "owners_with",
    "owners_with_any",
    "owners_without",
    "get_entity_type",
    "register_entity_type",
    # Validation
    "ValidCountry",
    "ValidCity",
    "ValidCurrency",
    "ValidLanguage",
    # Errors
    "WorldableError",
    "InvalidComponentError",
    "DependencyNotInstalledError",
    "WorldablesTableMissingError",
]
