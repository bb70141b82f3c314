from pydantic import BaseModel, ConfigDict, Field

from lms_presence.schemas.connection import Identity


class UserModel(BaseModel):  # type: ignore[misc]
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int
    email: str | None = None
    role: str | None = None
    name: str | None = None
    # timestamp when the LMS session token expires
    expired_in: int | None = Field(default=None, alias="exp")

    @property
    def roles(self) -> list[str]:
        return [self.role] if self.role else []

    # Starlette's BaseUser interface
    @property
    def is_authenticated(self) -> bool:
        return True

    @property
    def username(self) -> str:
        return self.email or str(self.id)

    def to_identity(self) -> Identity:
        return Identity(
            user_id=self.id, name=self.name, email=self.email, role=self.role
        )

    def __hash__(self) -> int:
        return hash(self.id)
