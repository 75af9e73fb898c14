# taskpick - Fuzzy Task Picker for Make, JS Package Managers, Just and Task
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
taskpick core package.

Discovers tasks from Makefiles, package.json scripts (npm/pnpm/yarn),
justfiles and Taskfiles, and lets the user fuzzy-pick one to run.
"""

__version__ = "0.1.0"
