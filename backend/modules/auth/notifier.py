"""
Default notifier.

Email delivery is not part of this service; the logging notifier writes
codes to the server log so local development can complete the flows.
"""

import logging

logger = logging.getLogger(__name__)


class LoggingNotifier:
    """Notifier that only logs."""

    async def send_verification_code(self, email: str, code: str) -> None:
        logger.info(f"Verification code issued for {email}")
        logger.debug(f"Verification code for {email}: {code}")

    async def send_password_reset(self, email: str, token: str) -> None:
        logger.info(f"Password reset issued for {email}")
        logger.debug(f"Password reset token for {email}: {token}")
