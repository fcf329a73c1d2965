from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class APIModel(BaseModel):
    """Response body whose fields are serialized in camelCase"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class BasicResponse(APIModel):
    message: str

class ProfilePictureResponse(BasicResponse):
    profile_picture: str
