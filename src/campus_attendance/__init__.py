"""Campus Attendance package.

Organized by feature modules (attendance, batches, holidays, ...) with a thin
Flask controller layer over service/repository layers backed by a generic
document store.
"""
