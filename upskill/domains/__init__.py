# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain services.

Each subpackage holds one service class bound to an AsyncSession plus
its exception hierarchy.
"""
