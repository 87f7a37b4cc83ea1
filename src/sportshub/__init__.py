"""SportsHub — college sports-event management backend.

Accounts, events with team rosters, notification fan-out and team chat
for a single campus deployment.
"""

__version__ = "3.0.0"
