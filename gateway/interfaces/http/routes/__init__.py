# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from typing import TYPE_CHECKING

from flask import Flask

if TYPE_CHECKING:
    from gateway.infrastructure.container import Container


def register_routes(app: Flask, container: Container) -> None:
    app.register_blueprint(container.misc_controller.as_blueprint())
    app.register_blueprint(container.users_controller.as_blueprint())
    app.register_blueprint(container.payments_controller.as_blueprint())


__all__ = ["register_routes"]
