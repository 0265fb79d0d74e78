# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from .settings import (
    AppConfig,
    DatabaseConfig,
    DownstreamConfig,
    ResilienceConfig,
    SecurityConfig,
    SessionConfig,
    load_config,
)

__all__ = [
    "AppConfig",
    "DatabaseConfig",
    "DownstreamConfig",
    "ResilienceConfig",
    "SecurityConfig",
    "SessionConfig",
    "load_config",
]
