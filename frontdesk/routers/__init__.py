from . import appointments, dashboard, doctors, patients, queue

__all__ = ["appointments", "dashboard", "doctors", "patients", "queue"]
