"""Memoji -- FastAPI REST API layer.

Modules
-------
main
    FastAPI application, the ``/api/og`` and ``/api/stats`` routes, and the
    ``main()`` CLI entry point.
models
    Pydantic response models.
"""
