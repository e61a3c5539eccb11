# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 hydrostreamer developers

"""
Single source of truth for the hydrostreamer version.
Update this when cutting a release.
"""
# Semantic version (PEP 440-friendly)
__version__ = "0.4.0"
