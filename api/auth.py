from fastapi import Cookie, HTTPException, Response

# Client-held session flags. They are neither signed nor expiring: whoever
# can set these cookies is treated as an admin.
AUTH_COOKIE = "admin_authenticated"
USERNAME_COOKIE = "admin_username"
COOKIE_MAX_AGE = 10 * 365 * 24 * 3600


def is_admin(admin_authenticated: str | None) -> bool:
    return admin_authenticated == "true"


def require_admin(admin_authenticated: str = Cookie(None)):
    if not is_admin(admin_authenticated):
        raise HTTPException(401, "Admin login required")


def remember_admin(response: Response, username: str):
    response.set_cookie(AUTH_COOKIE, "true", max_age=COOKIE_MAX_AGE, samesite="lax")
    response.set_cookie(USERNAME_COOKIE, username, max_age=COOKIE_MAX_AGE, samesite="lax")


def forget_admin(response: Response):
    response.delete_cookie(AUTH_COOKIE)
    response.delete_cookie(USERNAME_COOKIE)
