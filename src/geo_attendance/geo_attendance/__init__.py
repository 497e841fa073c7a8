"""Geo Attendance package.

This package is organized by feature modules (geo, zones, tracking, attendance, sync)
with a thin Flask controller layer and SOLID service/repository layers.
"""
