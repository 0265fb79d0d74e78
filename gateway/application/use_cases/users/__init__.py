# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from .sign_in import SignInUseCase, SignUpUseCase, identity_from_response
from .sign_out import SignOutUseCase

__all__ = ["SignInUseCase", "SignOutUseCase", "SignUpUseCase", "identity_from_response"]
