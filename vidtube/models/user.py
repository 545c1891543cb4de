from vidtube.models.base_model import Base, BaseModel
from sqlalchemy import Column, String, Text
from sqlalchemy.orm import validates

from vidtube.utils.security import hash_password, verify_password


class User(BaseModel, Base):
    __tablename__ = "users"
    username = Column(String(64), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    fullname = Column(String(255), nullable=False)
    avatar = Column(String(512), nullable=True)
    cover_image = Column(String(512), nullable=True, default="")
    password_hash = Column(String(255), nullable=False)
    # Most recently issued refresh token; NULL once logged out
    refresh_token = Column(Text, nullable=True)

    @validates("username", "email")
    def _normalize(self, key, value):
        return value.strip().lower() if isinstance(value, str) else value

    @property
    def password(self):
        raise AttributeError("Password: Write-only field")

    @password.setter
    def password(self, plaintext: str):
        self.password_hash = hash_password(plaintext)

    def is_password_correct(self, plaintext: str) -> bool:
        if not plaintext or not self.password_hash:
            return False
        return verify_password(plaintext, self.password_hash)

    def __repr__(self):
        return f"<User {self.username}>"
