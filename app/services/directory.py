"""Directory (LDAP / Active Directory) authentication: two-phase bind and group-to-role mapping.

Phase 1 binds as the service account and searches for the login name; phase 2 binds as
the entry found, with the supplied password. The application never stores that password.
Both connections are unbound on every exit path.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterable

from ldap3 import NONE, SUBTREE, Connection, Server
from ldap3.core.exceptions import LDAPException
from ldap3.utils.conv import escape_filter_chars

from app.core.config import LDAP_USERNAME_PLACEHOLDER
from app.models.user import ROLE_ADMIN, ROLE_ANALYST, ROLE_TEAM_LEAD
from app.services.errors import (
    DirectoryConfigurationError,
    DirectoryUnavailableError,
    InvalidCredentialsError,
    UserNotFoundError,
)

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

# Attributes read from the matched entry.
SEARCH_ATTRIBUTES = ["sAMAccountName", "uid", "displayName", "mail", "givenName", "sn", "memberOf"]

# Settings keys a working directory login needs, in the order they are reported.
REQUIRED_KEYS = ("LDAP_URL", "LDAP_BIND_DN", "LDAP_BIND_PASSWORD", "LDAP_SEARCH_BASE")


@dataclass(frozen=True)
class RoleGroupMapping:
    """Group CN values (lowercased) that grant each role; admin outranks team_lead outranks analyst."""

    admin: frozenset[str] = frozenset()
    team_lead: frozenset[str] = frozenset()
    analyst: frozenset[str] = frozenset()

    @classmethod
    def from_names(
        cls,
        admin: Iterable[str] = (),
        team_lead: Iterable[str] = (),
        analyst: Iterable[str] = (),
    ) -> RoleGroupMapping:
        def norm(names: Iterable[str]) -> frozenset[str]:
            return frozenset(n.strip().lower() for n in names if n and n.strip())

        return cls(admin=norm(admin), team_lead=norm(team_lead), analyst=norm(analyst))


@dataclass(frozen=True)
class DirectorySettings:
    url: str | None
    bind_dn: str | None
    bind_password: str | None
    search_base: str | None
    search_filter: str
    timeout: float
    role_groups: RoleGroupMapping = field(default_factory=RoleGroupMapping)
    enabled: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> DirectorySettings:
        password = (
            settings.LDAP_BIND_PASSWORD.get_secret_value()
            if settings.LDAP_BIND_PASSWORD is not None
            else None
        )
        return cls(
            url=settings.LDAP_URL,
            bind_dn=settings.LDAP_BIND_DN,
            bind_password=password or None,
            search_base=settings.LDAP_SEARCH_BASE,
            search_filter=settings.LDAP_SEARCH_FILTER,
            timeout=settings.LDAP_TIMEOUT_SEC,
            role_groups=RoleGroupMapping.from_names(
                admin=settings.LDAP_ADMIN_GROUPS,
                team_lead=settings.LDAP_LEAD_GROUPS,
                analyst=settings.LDAP_ANALYST_GROUPS,
            ),
            enabled=settings.LDAP_ENABLED,
        )

    def missing_keys(self) -> list[str]:
        values = {
            "LDAP_URL": self.url,
            "LDAP_BIND_DN": self.bind_dn,
            "LDAP_BIND_PASSWORD": self.bind_password,
            "LDAP_SEARCH_BASE": self.search_base,
        }
        return [key for key in REQUIRED_KEYS if not values[key]]


@dataclass(frozen=True)
class DirectoryUser:
    """Identity read from the directory after a successful user bind."""

    dn: str
    username: str
    first_name: str = ""
    last_name: str = ""
    email: str | None = None
    display_name: str = ""
    groups: tuple[str, ...] = ()


def group_common_name(group: str) -> str:
    """Return the first CN value of a group DN, lowercased; the whole string if it has no CN."""
    for part in group.split(","):
        key, sep, value = part.partition("=")
        if sep and key.strip().lower() == "cn":
            return value.strip().lower()
    return group.strip().lower()


def map_groups_to_role(groups: Any, mapping: RoleGroupMapping) -> str:
    """
    Map directory group memberships to an application role.

    Each group's CN is compared case-insensitively against the configured names for
    admin, then team_lead, then analyst; first match wins. No match, a missing
    attribute, or a value that is not a list of strings yields analyst.
    """
    if isinstance(groups, str):
        groups = [groups]
    if not isinstance(groups, (list, tuple, set, frozenset)):
        return ROLE_ANALYST
    names = {group_common_name(g) for g in groups if isinstance(g, str) and g.strip()}
    if names & mapping.admin:
        return ROLE_ADMIN
    if names & mapping.team_lead:
        return ROLE_TEAM_LEAD
    return ROLE_ANALYST


def _first(attrs: dict[str, Any], name: str) -> str:
    value = attrs.get(name)
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if value is None:
        return ""
    return str(value).strip()


def _safe_unbind(conn: Connection | None) -> None:
    if conn is None:
        return
    try:
        conn.unbind()
    except LDAPException as e:
        logger.debug("LDAP unbind failed: %s", e)


class DirectoryAuthenticator:
    """Authenticates users against an LDAP/AD server. Built once at startup."""

    def __init__(self, config: DirectorySettings) -> None:
        self.config = config

    @classmethod
    def from_settings(cls, settings: Settings) -> DirectoryAuthenticator:
        return cls(DirectorySettings.from_settings(settings))

    def _require_config(self) -> None:
        if not self.config.enabled:
            raise DirectoryConfigurationError(
                "Directory authentication is disabled; set LDAP_ENABLED=true.",
                missing=["LDAP_ENABLED"],
            )
        missing = self.config.missing_keys()
        if missing:
            raise DirectoryConfigurationError(
                "Directory authentication is not configured; set " + ", ".join(missing) + ".",
                missing=missing,
            )

    def _connection(self, user: str, password: str) -> Connection:
        server = Server(
            self.config.url,
            get_info=NONE,
            connect_timeout=self.config.timeout,
        )
        return Connection(
            server,
            user=user,
            password=password,
            receive_timeout=self.config.timeout,
            raise_exceptions=False,
        )

    def _search_filter(self, username: str) -> str:
        return self.config.search_filter.replace(
            LDAP_USERNAME_PLACEHOLDER, escape_filter_chars(username)
        )

    def role_for(self, user: DirectoryUser) -> str:
        return map_groups_to_role(list(user.groups), self.config.role_groups)

    def authenticate(self, username: str, password: str) -> DirectoryUser:
        """
        Run the two-phase bind for username/password and return the directory identity.

        Raises DirectoryConfigurationError (before any network call), UserNotFoundError,
        InvalidCredentialsError or DirectoryUnavailableError.
        """
        self._require_config()
        if not username or not password:
            # An empty password would be an anonymous bind, which many servers accept.
            raise InvalidCredentialsError()

        service_conn: Connection | None = None
        user_conn: Connection | None = None
        try:
            service_conn = self._connection(self.config.bind_dn, self.config.bind_password)
            if not service_conn.bind():
                logger.error(
                    "LDAP service account bind rejected",
                    extra={"ldap_result": str(service_conn.result)[:500]},
                )
                raise DirectoryUnavailableError("Directory service account bind failed.")

            service_conn.search(
                self.config.search_base,
                self._search_filter(username),
                search_scope=SUBTREE,
                attributes=SEARCH_ATTRIBUTES,
                size_limit=2,
            )
            entries = list(service_conn.entries)
            if not entries:
                logger.info("LDAP user not found", extra={"username": username})
                raise UserNotFoundError("User not found in directory.")
            if len(entries) > 1:
                logger.warning("LDAP search matched multiple entries", extra={"username": username})
                raise UserNotFoundError("Directory search matched more than one entry.")
            entry = entries[0]

            user_conn = self._connection(entry.entry_dn, password)
            if not user_conn.bind():
                logger.info("LDAP user bind rejected", extra={"username": username})
                raise InvalidCredentialsError()

            return self._to_directory_user(entry, username)
        except LDAPException as e:
            logger.error(
                "LDAP directory unavailable",
                extra={"username": username, "ldap_url": self.config.url, "error": str(e)[:500]},
            )
            raise DirectoryUnavailableError("Directory is unreachable or timed out.") from e
        finally:
            _safe_unbind(user_conn)
            _safe_unbind(service_conn)

    def test_connection(self) -> bool:
        """Bind as the service account only; True if the bind succeeded."""
        if not self.config.enabled or self.config.missing_keys():
            return False
        conn: Connection | None = None
        try:
            conn = self._connection(self.config.bind_dn, self.config.bind_password)
            return bool(conn.bind())
        except LDAPException as e:
            logger.error(
                "LDAP connection test failed",
                extra={"ldap_url": self.config.url, "error": str(e)[:500]},
            )
            return False
        finally:
            _safe_unbind(conn)

    @staticmethod
    def _to_directory_user(entry: Any, username: str) -> DirectoryUser:
        attrs = entry.entry_attributes_as_dict
        groups = attrs.get("memberOf") or []
        if isinstance(groups, str):
            groups = [groups]
        return DirectoryUser(
            dn=entry.entry_dn,
            username=_first(attrs, "sAMAccountName") or _first(attrs, "uid") or username,
            first_name=_first(attrs, "givenName"),
            last_name=_first(attrs, "sn"),
            email=_first(attrs, "mail") or None,
            display_name=_first(attrs, "displayName"),
            groups=tuple(str(g) for g in groups if g),
        )
