from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, Field

# Endpoint field name -> (CredentialSet attribute, exported environment variable)
CREDENTIAL_FIELDS: Dict[str, tuple] = {
    "AccessKeyId": ("access_key", "AWS_ACCESS_KEY_ID"),
    "SecretAccessKey": ("secret_key", "AWS_SECRET_ACCESS_KEY"),
    "Token": ("session_token", "AWS_SESSION_TOKEN"),
}

EXPIRATION_FIELD = "Expiration"


class CredentialSet(BaseModel):
    """Credentials exported to the supervised command"""
    access_key: Optional[str] = Field(None, description="Value of AWS_ACCESS_KEY_ID")
    secret_key: Optional[str] = Field(None, description="Value of AWS_SECRET_ACCESS_KEY")
    session_token: Optional[str] = Field(None, description="Value of AWS_SESSION_TOKEN")
    expiration: Optional[datetime] = Field(None, description="Expiration reported by the endpoint")

    def to_environment(self) -> Dict[str, str]:
        """Get the environment overlay for the fields that are set"""
        environment = {}
        for attribute, variable in CREDENTIAL_FIELDS.values():
            value = getattr(self, attribute)
            if value is not None:
                environment[variable] = value
        return environment

    def __repr__(self) -> str:
        # Never leak secrets into logs or tracebacks
        present = sorted(self.to_environment())
        return f"CredentialSet(present={present}, expiration={self.expiration!r})"

    __str__ = __repr__
