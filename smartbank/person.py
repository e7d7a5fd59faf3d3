"""Personal details shared by admins and clients."""

from dataclasses import dataclass
from typing import List


@dataclass
class Person:
    """Name and contact fields embedded in admin and client records"""
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def person_fields(self) -> List[str]:
        return [self.first_name, self.last_name, self.email, self.phone]
