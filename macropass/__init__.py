# Copyright (C) 2019-2024 Intel Corporation
# SPDX-License-Identifier: BSD-3-Clause
"""
A line-oriented macro-directive processor supporting #define, #undef,
#include, #region and #endregion.
"""

__version__ = "0.1.0"
