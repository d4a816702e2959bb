from dataclasses import dataclass


@dataclass(frozen=True)
class Actor:
    """Identity handed to the core by the authentication layer."""

    user_id: int
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def owns(self, reservation) -> bool:
        return reservation.user_id == self.user_id

    @classmethod
    def from_user(cls, user):
        return cls(user_id=user.id, role=user.role)
