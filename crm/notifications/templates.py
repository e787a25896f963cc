"""Transactional email templates (password reset, welcome)."""

from dataclasses import dataclass
from datetime import datetime, timezone

from jinja2 import Environment

_env = Environment(autoescape=True, trim_blocks=True, lstrip_blocks=True)
_text_env = Environment(autoescape=False)

_BASE_STYLE = """
body { margin: 0; padding: 0; font-family: 'Segoe UI', Arial, sans-serif; line-height: 1.6; color: #333; background: #f8f9fa; }
.container { max-width: 600px; margin: 20px auto; background: #fff; border-radius: 8px; overflow: hidden; }
.header { background: #667eea; padding: 40px 30px; text-align: center; color: white; }
.header h1 { margin: 0; font-size: 28px; font-weight: 600; }
.content { padding: 40px 30px; }
.content p { margin-bottom: 20px; color: #666; }
.button { display: inline-block; padding: 15px 30px; background: #667eea; color: white;
          text-decoration: none; border-radius: 6px; font-weight: 600; margin: 20px 0; }
.security-info { background: #f8f9fa; border-left: 4px solid #667eea; padding: 20px; margin: 30px 0; }
.footer { padding: 30px; text-align: center; color: #999; font-size: 14px; border-top: 1px solid #eee; }
.token { font-family: monospace; background: #f8f9fa; padding: 10px; border-radius: 4px; font-weight: bold; }
"""

_PASSWORD_RESET_HTML = _env.from_string("""
<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><style>{{ style | safe }}</style></head>
<body>
  <div class="container">
    <div class="header"><h1>Password Reset</h1></div>
    <div class="content">
      <h2>Hi {{ user_name }},</h2>
      <p>We received a request to reset the password for your CRM account. If you made this request, click the button below:</p>
      <p style="text-align: center;"><a href="{{ reset_url }}" class="button">Reset My Password</a></p>
      <p>Or copy this link: <span style="word-break: break-all; color: #667eea;">{{ reset_url }}</span></p>
      <div class="security-info">
        <h3>Security information</h3>
        <ul>
          <li>This link expires in {{ expires_in }}</li>
          <li>You can only use this link once</li>
          <li>If you didn't request this, please ignore this email</li>
        </ul>
      </div>
      <p>Token: <span class="token">{{ reset_token }}</span></p>
    </div>
    <div class="footer">
      <p><strong>{{ from_name }}</strong></p>
      <p>&copy; {{ year }} All rights reserved.</p>
    </div>
  </div>
</body>
</html>
""")

_PASSWORD_RESET_TEXT = _text_env.from_string(
    "Hi {{ user_name }},\n\n"
    "Reset your password: {{ reset_url }}\n\n"
    "Token: {{ reset_token }}\n\n"
    "This link expires in {{ expires_in }}.\n\n"
    "{{ from_name }}"
)

_WELCOME_HTML = _env.from_string("""
<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><style>{{ style | safe }}</style></head>
<body>
  <div class="container">
    <div class="header"><h1>Welcome!</h1></div>
    <div class="content">
      <h2>Hi {{ user_name }},</h2>
      <p>Welcome to {{ from_name }}! Your account is ready.</p>
      <p style="text-align: center;"><a href="{{ login_url }}" class="button">Sign In to Your Account</a></p>
      <p>Start exploring: Dashboard, Contacts, Companies, and Deals management.</p>
    </div>
    <div class="footer">
      <p><strong>{{ from_name }}</strong></p>
      <p>&copy; {{ year }} All rights reserved.</p>
    </div>
  </div>
</body>
</html>
""")

_WELCOME_TEXT = _text_env.from_string(
    "Hi {{ user_name }},\n\n"
    "Welcome to {{ from_name }}!\n\n"
    "Sign in: {{ login_url }}\n\n"
    "{{ from_name }}"
)


@dataclass(frozen=True)
class EmailTemplate:
    subject: str
    html: str
    text: str


def _common(from_name: str) -> dict:
    return {
        "style": _BASE_STYLE,
        "from_name": from_name,
        "year": datetime.now(timezone.utc).year,
    }


def password_reset_template(
    user_name: str,
    reset_url: str,
    reset_token: str,
    from_name: str,
    expires_in: str = "1 hour",
) -> EmailTemplate:
    ctx = {
        **_common(from_name),
        "user_name": user_name,
        "reset_url": reset_url,
        "reset_token": reset_token,
        "expires_in": expires_in,
    }
    return EmailTemplate(
        subject="Reset Your CRM Password",
        html=_PASSWORD_RESET_HTML.render(**ctx),
        text=_PASSWORD_RESET_TEXT.render(**ctx),
    )


def welcome_template(user_name: str, login_url: str, from_name: str) -> EmailTemplate:
    ctx = {**_common(from_name), "user_name": user_name, "login_url": login_url}
    return EmailTemplate(
        subject=f"Welcome to {from_name}!",
        html=_WELCOME_HTML.render(**ctx),
        text=_WELCOME_TEXT.render(**ctx),
    )
