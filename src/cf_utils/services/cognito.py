"""
Cognito user pool admin flows.
"""

import logging
import secrets
import string
from typing import Any, Dict, List

from ..aws import AwsContext

logger = logging.getLogger(__name__)

PASSWORD_LENGTH = 11


def generate_password(length: int = PASSWORD_LENGTH) -> str:
    """
    Generate a random password with upper case, lower case and digits.

    The result is prefixed with '!' so it also satisfies symbol requirements.
    """
    alphabet = string.ascii_letters + string.digits
    while True:
        candidate = "".join(secrets.choice(alphabet) for _ in range(length))
        if (
            any(c.islower() for c in candidate)
            and any(c.isupper() for c in candidate)
            and any(c.isdigit() for c in candidate)
        ):
            return "!" + candidate


class CognitoManager:
    """Administer users in a Cognito user pool."""

    def __init__(self, context: AwsContext):
        self.context = context

    async def admin_create_user(
        self, pool_id: str, client_id: str, username: str, attributes: List[Dict[str, str]]
    ) -> Dict[str, Any]:
        """
        Create a confirmed user with a generated password.

        The user is created with a temporary password (no invitation is sent),
        then the NEW_PASSWORD_REQUIRED challenge is answered with the final
        password.

        Args:
            pool_id: Cognito user pool id
            client_id: App client id (must allow ADMIN_NO_SRP_AUTH)
            username: Username
            attributes: Cognito user attributes ({"Name", "Value"} dicts)

        Returns:
            {"user": AdminCreateUser response, "password": final password}
        """
        password = generate_password()
        temporary = "temp" + password

        user = await self.context.call(
            "cognito-idp",
            "admin_create_user",
            UserPoolId=pool_id,
            Username=username,
            MessageAction="SUPPRESS",
            TemporaryPassword=temporary,
            UserAttributes=attributes,
        )
        created_name = user["User"]["Username"]

        auth = await self.context.call(
            "cognito-idp",
            "admin_initiate_auth",
            AuthFlow="ADMIN_NO_SRP_AUTH",
            ClientId=client_id,
            UserPoolId=pool_id,
            AuthParameters={"USERNAME": created_name, "PASSWORD": temporary},
        )

        await self.context.call(
            "cognito-idp",
            "admin_respond_to_auth_challenge",
            ChallengeName="NEW_PASSWORD_REQUIRED",
            ClientId=client_id,
            UserPoolId=pool_id,
            ChallengeResponses={"USERNAME": created_name, "NEW_PASSWORD": password},
            Session=auth["Session"],
        )
        logger.info(f"Created Cognito user {created_name}")

        return {"user": user, "password": password}

    async def admin_update_user_attributes(
        self, pool_id: str, username: str, attributes: List[Dict[str, str]]
    ) -> Dict[str, Any]:
        """Update a user's attributes."""
        return await self.context.call(
            "cognito-idp",
            "admin_update_user_attributes",
            UserPoolId=pool_id,
            Username=username,
            UserAttributes=attributes,
        )
