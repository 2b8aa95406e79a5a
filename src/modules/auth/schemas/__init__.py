from .auth_schemas import (
    LoginRequest, TokenResponse, UserCreate, UserResponse,
    TwoFactorSetupResponse, TwoFactorEnableRequest
)

__all__ = [
    'LoginRequest', 'TokenResponse', 'UserCreate', 'UserResponse',
    'TwoFactorSetupResponse', 'TwoFactorEnableRequest'
]
