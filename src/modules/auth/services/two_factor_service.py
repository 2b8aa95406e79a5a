from typing import Optional

from passlib.exc import TokenError
from passlib.totp import TOTP
from sqlalchemy.orm import Session

from config import settings
from modules.documents.models.recipient import Recipient
from modules.documents.models.user import User
from modules.documents.schemas import AccessAuthOptions, DocumentAuth
from logger import get_logger

logger = get_logger(__name__)


class TwoFactorService:
    """TOTP second factor for user accounts and the recipients tied to them"""

    def __init__(self, session: Session):
        self.session = session

    def setup(self, user: User) -> dict:
        """Genera un nuevo secreto TOTP (aún no habilitado)"""
        totp = TOTP.new()
        user.two_factor_secret = totp.base32_key
        user.two_factor_enabled = False
        user.two_factor_last_counter = None
        self.session.commit()
        return {
            "secret": totp.base32_key,
            "uri": totp.to_uri(label=user.email, issuer=settings.two_factor_issuer),
        }

    def enable(self, user: User, token: str) -> bool:
        """Habilita 2FA si el código coincide con el secreto pendiente"""
        if not user.two_factor_secret or not self.verify_token(user, token):
            return False
        user.two_factor_enabled = True
        self.session.commit()
        return True

    def verify_token(self, user: User, token: str) -> bool:
        """
        Check a code against the user's secret. Each accepted code burns its
        time step, so the same code can not be used twice.
        """
        try:
            match = TOTP(key=user.two_factor_secret, format="base32").match(
                token, last_counter=user.two_factor_last_counter
            )
        except TokenError:
            return False
        user.two_factor_last_counter = match.counter
        self.session.commit()
        return True

    def validate_second_factor(self, recipient: Recipient, credentials: Optional[AccessAuthOptions]) -> bool:
        """
        Validate a recipient's second factor against the account sharing its email.
        """
        if credentials is None or credentials.type != DocumentAuth.TWO_FACTOR_AUTH:
            return False

        user = self.session.query(User).filter(User.email == recipient.email).first()
        if not user or not user.two_factor_enabled or not user.two_factor_secret:
            logger.info("Recipient has no account with 2FA enabled", recipient_id=recipient.id)
            return False

        return self.verify_token(user, credentials.token)
