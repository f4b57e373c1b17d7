# Copyright (c)
# SPDX-License-Identifier: MIT
"""Configuration package."""
