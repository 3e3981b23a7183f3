"""Care Office back-office package.

This package is organized by feature modules (staff, participants, houses,
roster, ...) around a shared staging/save core, with a thin Flask controller
layer and store/service layers underneath.
"""
