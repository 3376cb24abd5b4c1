from dataclasses import dataclass

ROLE_ADMIN = "admin"
ROLE_MANAGER = "manager"
ROLE_TECHNICIAN = "technician"
ROLE_USER = "user"

ROLES = (ROLE_ADMIN, ROLE_MANAGER, ROLE_TECHNICIAN, ROLE_USER)


@dataclass(frozen=True)
class Caller:
    """
    Identity of whoever is calling a service operation

    Built from the authenticated user; services trust these fields as given
    """

    id: str
    role: str = ROLE_USER
    first_name: str = ""
    last_name: str = ""

    @classmethod
    def from_user(cls, user) -> "Caller":
        return cls(
            id=str(user.pk),
            role=(getattr(user, "role", "") or ROLE_USER).strip().lower(),
            first_name=(user.first_name or "").strip(),
            last_name=(user.last_name or "").strip(),
        )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def sees_everything(self) -> bool:
        return self.role in (ROLE_ADMIN, ROLE_MANAGER)
