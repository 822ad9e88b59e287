"""
Admin login router.
"""

from fastapi import APIRouter
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import BaseModel
from typing import Optional
import logging

from ocr_enhancer.utils.security import verify_admin_password

router = APIRouter(tags=["admin"])
logger = logging.getLogger(__name__)

ADMIN_PAGE = """
<html>
  <head><title>Admin Login</title></head>
  <body style="font-family: sans-serif; padding: 2rem;">
    <h2>Admin Login</h2>
    <form onsubmit="login(event)">
      <input type="password" id="password" placeholder="Password" required />
      <button type="submit">Sign in</button>
    </form>
    <pre id="result"></pre>
    <script>
      async function login(e) {
        e.preventDefault();
        const password = document.getElementById('password').value;
        const res = await fetch('/api/admin-login', {
          method: 'POST',
          headers: { 'Content-Type': 'application/json' },
          body: JSON.stringify({ password }),
        });
        const data = await res.json();
        document.getElementById('result').innerText = JSON.stringify(data, null, 2);
      }
    </script>
  </body>
</html>
"""


class LoginRequest(BaseModel):
    """Request model for admin login."""
    password: Optional[str] = None


class LoginResponse(BaseModel):
    """Response model for admin login."""
    success: bool
    message: str


@router.post("/api/admin-login", response_model=LoginResponse)
async def admin_login(request: LoginRequest):
    """Check the admin password."""
    if not request.password:
        return JSONResponse(
            status_code=400,
            content=LoginResponse(success=False, message="Password required").model_dump()
        )

    if not verify_admin_password(request.password):
        logger.warning("Rejected admin login")
        return JSONResponse(
            status_code=401,
            content=LoginResponse(success=False, message="Incorrect password").model_dump()
        )

    return LoginResponse(success=True, message="Login successful")


@router.get("/admin", response_class=HTMLResponse)
async def admin_page():
    """Minimal login page."""
    return ADMIN_PAGE
