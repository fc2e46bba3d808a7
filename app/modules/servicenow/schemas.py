from pydantic import BaseModel


class ServiceNowCredentials(BaseModel):
    instance_url: str = ""
    scope_id: str = ""
    username: str = ""
    password: str = ""
    has_credentials: bool = False
