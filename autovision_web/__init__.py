"""
Autovision HTTP layer (FastAPI).

Build the app with autovision_web.main.create_app(); routers:
- autovision_web.auth_routes.router      (/api/auth)
- autovision_web.user_routes.router      (/api/users)
- autovision_web.vehicle_routes.router   (/api/vehicles)
"""
