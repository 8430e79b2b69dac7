"""Pension Calculation API: HTTP transport around pension_runtime."""
