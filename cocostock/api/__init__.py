# Copyright 2026 ChakraOps
# SPDX-License-Identifier: MIT
"""HTTP layer. The app itself lives in cocostock.api.server (imported by uvicorn as cocostock.api.server:app)."""
