from typing import Optional
import sqlite3

from fastapi import Depends, Header

from backend.analytics.catalog import find_user_id_by_email
from backend.app.db import get_conn


USER_EMAIL_HEADER = "X-User-Email"


def current_user_id(
    x_user_email: Optional[str] = Header(default=None, alias=USER_EMAIL_HEADER),
    conn: sqlite3.Connection = Depends(get_conn),
) -> Optional[str]:
    """
    Resolve the caller to a user id, or None for anonymous callers.
    The session layer in front of us puts the signed-in email in a header;
    an unknown email is treated the same as no email.
    """
    email = (x_user_email or "").strip()
    if not email:
        return None
    return find_user_id_by_email(conn, email)
