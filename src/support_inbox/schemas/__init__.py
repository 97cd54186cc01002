from .social import SocialData, FacebookData, TwitterData

__all__ = ["SocialData", "FacebookData", "TwitterData"]
