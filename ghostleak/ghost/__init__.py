"""Module __init__: passive navigation observation."""
#
# PURPOSE:
# Watches what the browser navigates to, without sending anything itself,
# and hands each navigated URL to the check dispatcher.
#
# THE GHOST PROTOCOL:
#   Browser <-> Ghost Proxy <-> Target site
#                  |
#                  +--> NavigationEventAdapter --> CheckDispatcher
#
# KEY MODULES:
# - **navigation.py**: host-agnostic adapter for (tab, change, tab-state) events
# - **proxy.py**: mitmproxy addon that synthesises those events from traffic
#

from .navigation import NavigationEventAdapter, navigation_url

__all__ = ["NavigationEventAdapter", "navigation_url"]
