"""Background workers: scheduled delivery retries.

Tasks are registered with Celery through ``workers.celery_app``.
"""
