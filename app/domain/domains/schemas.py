"""Domain schemas"""

from pydantic import BaseModel, field_validator

from ...shared.validators import validate_domain


class SetDomainRequest(BaseModel):
    domain: str

    @field_validator("domain")
    @classmethod
    def check_domain(cls, v):
        return validate_domain(v)
