"""Shift attendance package.

Organized by feature modules (time_records, shifts, scheduling, overtime, ...)
with a thin Flask controller layer on top of service/repository layers.
"""
