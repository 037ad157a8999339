"""Catalogue of data collections the browser can fetch.

Each action id maps to a label for display and exactly one controller client
call. Unknown or empty ids resolve to ``DEFAULT_ACTION``.
"""

from typing import Any, Callable, Dict, NamedTuple, Tuple


class Action(NamedTuple):
    label: str
    call: Callable[[Any], Any]


def _method(name: str, *args) -> Callable[[Any], Any]:
    return lambda client: getattr(client, name)(*args)


DEFAULT_ACTION = "stat_daily_site"

ACTIONS: Dict[str, Action] = {
    # Clients
    "list_clients": Action("list online clients", _method("list_clients")),
    "stat_allusers": Action("stat all users", _method("stat_allusers")),
    "stat_auths": Action("stat active authorisations", _method("stat_auths")),
    "list_guests": Action("list guests", _method("list_guests")),
    "list_usergroups": Action("list usergroups", _method("list_usergroups")),
    "stat_sessions": Action("stat sessions", _method("stat_sessions")),
    "list_users": Action("list users", _method("list_users")),
    # Statistics
    "stat_5minutes_site": Action("5 minute site stats", _method("stat_5minutes_site")),
    "stat_hourly_site": Action("hourly site stats", _method("stat_hourly_site")),
    "stat_daily_site": Action("daily site stats", _method("stat_daily_site")),
    "stat_5minutes_aps": Action("5 minute ap stats", _method("stat_5minutes_aps")),
    "stat_hourly_aps": Action("hourly ap stats", _method("stat_hourly_aps")),
    "stat_daily_aps": Action("daily ap stats", _method("stat_daily_aps")),
    "stat_5minutes_gateway": Action("5 minute gateway stats", _method("stat_5minutes_gateway")),
    "stat_hourly_gateway": Action("hourly gateway stats", _method("stat_hourly_gateway")),
    "stat_daily_gateway": Action("daily gateway stats", _method("stat_daily_gateway")),
    "list_health": Action("site health metrics", _method("list_health")),
    "list_dashboard(true)": Action(
        "5 minutes site dashboard metrics", _method("list_dashboard", True)
    ),
    "list_hourly_dashboard": Action("hourly site dashboard metrics", _method("list_dashboard")),
    "list_portforward_stats": Action("list port forwarding stats", _method("list_portforward_stats")),
    "list_dpi_stats": Action("list DPI stats", _method("list_dpi_stats")),
    "stat_sites": Action("all site stats", _method("stat_sites")),
    # Devices
    "list_devices": Action("list devices", _method("list_devices")),
    "list_tags": Action("list tags", _method("list_tags")),
    "list_wlan_groups": Action("list wlan groups", _method("list_wlan_groups")),
    "list_known_rogueaps": Action("list known rogue access points", _method("list_known_rogueaps")),
    "list_current_channels": Action("current channels", _method("list_current_channels")),
    # Events and alarms
    "list_events": Action("list events", _method("list_events")),
    "list_alarms": Action("list alarms", _method("list_alarms")),
    "count_alarms": Action("count all alarms", _method("count_alarms")),
    "count_alarms(false)": Action("count active alarms", _method("count_alarms", False)),
    "stat_ips_events": Action("list IPS/IDS events", _method("stat_ips_events")),
    # Configuration
    "stat_sysinfo": Action("sysinfo", _method("stat_sysinfo")),
    "list_self": Action("self", _method("list_self")),
    "list_settings": Action("list site settings", _method("list_settings")),
    "list_sites": Action("details of available sites", _method("list_sites")),
    "list_wlanconf": Action("list wlan config", _method("list_wlanconf")),
    "list_firewallgroups": Action("list firewall groups", _method("list_firewallgroups")),
    "list_extension": Action("list VoIP extensions", _method("list_extension")),
    "list_portconf": Action("list port configuration", _method("list_portconf")),
    "list_networkconf": Action("list network configuration", _method("list_networkconf")),
    "list_dynamicdns": Action("dynamic DNS configuration", _method("list_dynamicdns")),
    "list_portforwarding": Action("list port forwarding rules", _method("list_portforwarding")),
    "list_country_codes": Action("list country codes", _method("list_country_codes")),
    "list_backups": Action("list auto backups", _method("list_backups")),
    # Hotspot
    "stat_voucher": Action("list hotspot vouchers", _method("stat_voucher")),
    "stat_payment": Action("list hotspot payments", _method("stat_payment")),
    "list_hotspotop": Action("list hotspot operators", _method("list_hotspotop")),
    # Admins and RADIUS
    "list_admins": Action("list admins", _method("list_admins")),
    "list_all_admins": Action("list all admins", _method("list_all_admins")),
    "list_radius_accounts": Action("list Radius accounts", _method("list_radius_accounts")),
    "list_radius_profiles": Action("list Radius profiles", _method("list_radius_profiles")),
}

if DEFAULT_ACTION not in ACTIONS:  # pragma: no cover
    raise RuntimeError(f"Default action '{DEFAULT_ACTION}' is missing from ACTIONS")


def resolve_action(action_id: str) -> Tuple[str, Action]:
    """Return the (id, Action) pair for ``action_id``, falling back to the default."""
    if action_id in ACTIONS:
        return action_id, ACTIONS[action_id]
    return DEFAULT_ACTION, ACTIONS[DEFAULT_ACTION]
