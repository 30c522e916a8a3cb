# Services package init
"""
TaskTrack Backend — Services Layer
====================================

Service Inventory:
    - TaskService: task CRUD over the request-scoped database session
    - AccessLogService: owner of the shared append-only access-log file
"""
