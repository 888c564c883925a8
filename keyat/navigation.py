"""Static bottom-navigation tables, one per role."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .roles import Role, normalize_role


@dataclass(frozen=True)
class NavItem:
    label: str
    href: str


@dataclass(frozen=True)
class Navigation:
    name: str
    role: Role
    items: tuple[NavItem, ...]

    def as_dict(self) -> dict:
        return {
            "name": self.name,
            "role": self.role,
            "items": [{"label": i.label, "href": i.href} for i in self.items],
        }


CONSUMER_NAVIGATION = Navigation(
    name="ConsumerNavigation",
    role="consumer",
    items=(
        NavItem("Dashboard", "/consumer/dashboard"),
        NavItem("Search", "/consumer/search"),
        NavItem("Saved", "/consumer/saved"),
        NavItem("Bookings", "/consumer/booking"),
        NavItem("Moving", "/consumer/moving"),
        NavItem("Services", "/consumer/services"),
        NavItem("Profile", "/consumer/profile"),
    ),
)

LANDLORD_NAVIGATION = Navigation(
    name="LandlordNavigation",
    role="landlord",
    items=(
        NavItem("Dashboard", "/landlord/dashboard"),
        NavItem("Properties", "/landlord/properties"),
        NavItem("Tenants", "/landlord/tenants"),
        NavItem("Earnings", "/landlord/earnings"),
        NavItem("Profile", "/landlord/profile"),
    ),
)

AGENT_NAVIGATION = Navigation(
    name="AgentNavigation",
    role="agent",
    items=(
        NavItem("Dashboard", "/agent/dashboard"),
        NavItem("Listings", "/agent/listings"),
        NavItem("Clients", "/agent/clients"),
        NavItem("Commissions", "/agent/commissions"),
        NavItem("Profile", "/agent/profile"),
    ),
)

SERVICE_PROVIDER_NAVIGATION = Navigation(
    name="ServiceProviderNavigation",
    role="service_provider",
    items=(
        NavItem("Dashboard", "/service-provider/dashboard"),
        NavItem("Jobs", "/service-provider/jobs"),
        NavItem("Schedule", "/service-provider/schedule"),
        NavItem("Earnings", "/service-provider/earnings"),
        NavItem("Profile", "/service-provider/profile"),
    ),
)

ADMIN_NAVIGATION = Navigation(
    name="AdminNavigation",
    role="admin",
    items=(
        NavItem("Dashboard", "/admin/dashboard"),
        NavItem("Users", "/admin/users"),
        NavItem("Properties", "/admin/properties"),
        NavItem("Transactions", "/admin/transactions"),
        NavItem("Analytics", "/admin/analytics"),
    ),
)

NAVIGATION_BY_ROLE: dict[str, Navigation] = {
    nav.role: nav
    for nav in (
        CONSUMER_NAVIGATION,
        LANDLORD_NAVIGATION,
        AGENT_NAVIGATION,
        SERVICE_PROVIDER_NAVIGATION,
        ADMIN_NAVIGATION,
    )
}


def select_navigation(role: Optional[str]) -> Navigation:
    """Return the navigation table for `role`. Unknown or missing roles get the consumer table."""
    return NAVIGATION_BY_ROLE[normalize_role(role)]
