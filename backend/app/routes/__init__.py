# Routes package init
"""
TaskTrack Backend — API Routes Package
========================================

Route Inventory:
    - tasks.py:   POST   /api/tasks
                  GET    /api/tasks
                  PUT    /api/tasks/{id}
                  DELETE /api/tasks/{id}
    - health.py:  GET    /api/health
                  GET    /api/debug
"""
