"""Coaching Center package.

Organized by feature modules (directory, attendance, marks, analytics, reports)
with a thin Flask controller layer over service/repository layers.
"""
