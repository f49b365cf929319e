from .identity_service import IdentityResolver, ProfileResolution

__all__ = ["IdentityResolver", "ProfileResolution"]
