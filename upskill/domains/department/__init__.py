# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Department domain package."""

from upskill.domains.department.service import (
    DepartmentExistsError,
    DepartmentNotFoundError,
    DepartmentOrganizationNotFoundError,
    DepartmentService,
    DepartmentServiceError,
    DepartmentValidationError,
    clean_name,
)

__all__ = [
    "DepartmentService",
    "DepartmentServiceError",
    "DepartmentNotFoundError",
    "DepartmentExistsError",
    "DepartmentValidationError",
    "DepartmentOrganizationNotFoundError",
    "clean_name",
]
