"""
TrabajaTecnico Backend — API Routes Package
============================================

Route Inventory:
    - applications.py:  POST /api/applications
                        PUT  /api/applications/{id}/status
                        PUT  /api/applications/{id}/withdraw
                        GET  /api/applications/my | /stats | /received
    - notifications.py: GET/PUT/DELETE /api/notifications...
    - projects.py:      GET  /api/projects | /my-projects | /stats
                        POST /api/projects
    - uploads.py:       POST /api/upload/cv
    - users.py:         GET/PUT /api/users/profile
    - health.py:        GET  /api/health

Routes stay thin: read the request, call one service, shape the response.
"""
