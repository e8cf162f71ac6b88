from enum import Enum


class UserRole(str, Enum):
    principal = "PRINCIPAL"
    management = "MANAGEMENT"
