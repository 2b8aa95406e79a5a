from modules.documents.models.user import UserRole

ROLE_PERMISSIONS = {
    UserRole.MEMBER: ["upload", "send"],
    UserRole.ADMIN: ["upload", "send", "manage"],
}

def can_perform_action(user_role: UserRole, action: str) -> bool:
    return action in ROLE_PERMISSIONS.get(user_role, [])
