"""
API route modules.

This package contains subrouters for:
- Auth: login, register, logout, refresh, and current user
- Users / Roles: user and role administration
- Businesses: business signup and module installation
- Employees: positions and employee assignments
- Scheduling: schedules, shifts, open-shift claiming, availability and swaps
- Reports: labor hours exports

Routers are included from workforce_api.api.main (under the /api/v1 prefix).
"""
