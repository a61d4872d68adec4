"""
TrabajaTecnico Backend — Services Layer
========================================

What:  Business logic between routes (HTTP) and the database (persistence).
How:   Services receive an AsyncSession per call and return ORM rows or
       schema objects; they raise TrabajaTecnicoError subclasses on failure.

Service Inventory:
    - ApplicationService:   application lifecycle (submit, status, withdraw)
    - ProjectService:       project publishing, public board, company listings
    - NotificationService:  in-app notification writer and read side
    - Mailer:               transactional HTML mail over SMTP
    - FileService:          CV upload validation, storage, cleanup
    - ProfileRepository:    per-role profile access (technician, company)
    - AccountRepository:    the editable account columns of ``users``
    - run_post_commit_hooks: best-effort side effects after a durable write
"""
