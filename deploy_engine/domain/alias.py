"""Alias validation against an application's domain and hosted zones.

Aliases are checked in two stages:

1. Prerequisites: the application must own a domain and its template version
   must be recent enough to support aliases.
2. Classification: the hostname must sit directly under the application
   domain (``<label>.<domain>``). Environment-level, application-level and
   root aliases are recognised and rejected; anything outside the domain is
   not in a managed hosted zone.

Both stages are pure: callers fetch the application version beforehand.
"""

import re
from dataclasses import dataclass
from typing import Iterable, List

from packaging.version import InvalidVersion, Version

from deploy_engine.core.errors import (
    IncompatibleAppVersionError,
    NLBAliasWithImportedCertError,
    NoDomainAssociatedError,
    UnsupportedAliasScopeError,
    UnsupportedHostedZoneError,
)


ALIAS_LEAST_APP_TEMPLATE_VERSION = "v1.0.0"

_LABEL = r"[a-zA-Z0-9-]+"


@dataclass(frozen=True)
class ValidatedAlias:
    hostname: str


def _parse_version(raw: str) -> Version:
    # Applications created before versioning carry no version at all.
    if not raw:
        return Version("0.0.0")
    try:
        return Version(raw[1:] if raw.startswith("v") else raw)
    except InvalidVersion:
        return Version("0.0.0")


def is_alias_compatible_version(app_version: str) -> bool:
    least = _parse_version(ALIAS_LEAST_APP_TEMPLATE_VERSION)
    return _parse_version(app_version) >= least


def check_alias_prerequisites(field: str, app_domain: str, app_version: str) -> None:
    """Raise unless the application can serve aliases at all."""
    if not app_domain:
        raise NoDomainAssociatedError(field)
    if not is_alias_compatible_version(app_version):
        raise IncompatibleAppVersionError(ALIAS_LEAST_APP_TEMPLATE_VERSION)


def classify_alias(alias: str, app_domain: str, app_name: str, env_name: str) -> ValidatedAlias:
    domain = re.escape(app_domain)
    env_zone = re.compile(rf"^([^.]+\.)?{re.escape(env_name)}\.{re.escape(app_name)}\.{domain}$")
    app_zone = re.compile(rf"^([^.]+\.)?{re.escape(app_name)}\.{domain}$")
    service_alias = re.compile(rf"^{_LABEL}\.{domain}$")

    if env_zone.match(alias):
        raise UnsupportedAliasScopeError(alias, "environment-level")
    if app_zone.match(alias):
        raise UnsupportedAliasScopeError(alias, "application-level")
    if alias == app_domain:
        raise UnsupportedAliasScopeError(alias, "root")
    if service_alias.match(alias):
        return ValidatedAlias(hostname=alias)
    raise UnsupportedHostedZoneError(alias, app_domain)


def validate_alias(
    alias: str,
    app_domain: str,
    app_version: str,
    *,
    app_name: str,
    env_name: str,
    field: str = "http.alias",
) -> ValidatedAlias:
    check_alias_prerequisites(field, app_domain, app_version)
    return classify_alias(alias, app_domain, app_name, env_name)


def validate_aliases(
    aliases: Iterable[str],
    app_domain: str,
    app_version: str,
    *,
    app_name: str,
    env_name: str,
    field: str = "http.alias",
) -> List[ValidatedAlias]:
    aliases = list(aliases)
    if not aliases:
        return []
    check_alias_prerequisites(field, app_domain, app_version)
    return [classify_alias(alias, app_domain, app_name, env_name) for alias in aliases]


def check_nlb_alias_posture(app_domain: str, env_name: str, has_imported_certs: bool) -> None:
    """Checks NLB aliases need before the version is known."""
    if not app_domain:
        raise NoDomainAssociatedError("nlb.alias")
    if has_imported_certs:
        raise NLBAliasWithImportedCertError(env_name)


def validate_nlb_aliases(
    aliases: Iterable[str],
    app_domain: str,
    app_version: str,
    *,
    app_name: str,
    env_name: str,
    has_imported_certs: bool,
) -> List[ValidatedAlias]:
    """NLB aliases follow the HTTP rules, and never work with imported certificates."""
    aliases = list(aliases)
    if not aliases:
        return []
    check_nlb_alias_posture(app_domain, env_name, has_imported_certs)
    return validate_aliases(
        aliases,
        app_domain,
        app_version,
        app_name=app_name,
        env_name=env_name,
        field="nlb.alias",
    )
