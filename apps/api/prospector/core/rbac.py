from collections.abc import Callable

from fastapi import Depends, HTTPException, status

from prospector.core.auth import AuthUser, get_current_user


def require_any_role(*roles: str) -> Callable[[AuthUser], AuthUser]:
    async def checker(user: AuthUser = Depends(get_current_user)) -> AuthUser:
        if not user.is_authenticated:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
        if not any(role in user.roles for role in roles):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Missing permission: {' or '.join(roles)}",
            )
        return user

    return checker
