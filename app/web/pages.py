"""HTML views: landing page, sign-up form, shared error page.

Inline templates keep the app to a single process with no static assets.
Every interpolated value goes through html.escape; user-supplied text
(moreInfo) and provider-supplied claims are both untrusted here.
"""

from __future__ import annotations

import html

from app.models.user import User

_LAYOUT = """\
<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <title>{title}</title>
  <style>
    * {{ margin: 0; padding: 0; box-sizing: border-box; }}
    body {{
      font-family: system-ui, -apple-system, sans-serif;
      display: flex; justify-content: center; align-items: center;
      min-height: 100vh; background: #f5f5f5;
    }}
    .card {{
      background: #fff; padding: 2rem; border-radius: 8px;
      box-shadow: 0 2px 8px rgba(0,0,0,.1); width: 420px;
    }}
    h1 {{ font-size: 1.25rem; margin-bottom: 1.5rem; text-align: center; }}
    p {{ margin-bottom: 1rem; }}
    label {{ display: block; font-size: .85rem; margin-bottom: .25rem; }}
    input, textarea {{
      width: 100%; padding: .5rem; margin-bottom: 1rem;
      border: 1px solid #ccc; border-radius: 4px; font-size: .95rem;
    }}
    input[readonly] {{ background: #f0f0f0; }}
    button, a.button {{
      display: block; width: 100%; padding: .6rem; background: #13b5ea;
      color: #fff; border: none; border-radius: 4px; font-size: .95rem;
      cursor: pointer; text-align: center; text-decoration: none;
    }}
    .message {{ color: #0a7a32; font-size: .9rem; margin-bottom: 1rem; }}
    .error {{ color: #c00; font-size: .9rem; margin-bottom: 1rem; }}
    .footer {{ margin-top: 1rem; font-size: .85rem; text-align: center; }}
  </style>
</head>
<body>
  <div class="card">
{body}
  </div>
</body>
</html>
"""

_HOME_BODY = """\
    <h1>Sign up with Xero</h1>
    <p>Use your Xero login to create your account. We only ask Xero for
    your name and email address.</p>
    <a class="button" href="{authorize_url}">Sign up with Xero</a>
"""

_SIGN_UP_BODY = """\
    <h1>Complete your sign up</h1>
    {notice}
    <form method="post" action="/sign-up">
      <label for="firstName">First name</label>
      <input id="firstName" name="firstName" value="{first_name}" readonly>
      <label for="lastName">Last name</label>
      <input id="lastName" name="lastName" value="{last_name}" readonly>
      <label for="email">Email</label>
      <input id="email" name="email" type="email" value="{email}" readonly>
      <label for="moreInfo">Tell us more about your business</label>
      <textarea id="moreInfo" name="moreInfo" rows="4">{more_info}</textarea>
      <button type="submit">Save</button>
    </form>
    <p class="footer"><a href="/logout">Log out</a></p>
"""

_ERROR_BODY = """\
    <h1>{title}</h1>
    <p class="error">{detail}</p>
    <a class="button" href="/">Start again</a>
"""


def _page(title: str, body: str) -> str:
    return _LAYOUT.format(title=html.escape(title), body=body)


def render_home(authorize_url: str) -> str:
    body = _HOME_BODY.format(authorize_url=html.escape(authorize_url, quote=True))
    return _page("Sign up with Xero", body)


def render_sign_up(
    user: User, *, message: str | None = None, error: str | None = None
) -> str:
    if error:
        notice = f'<p class="error">{html.escape(error)}</p>'
    elif message:
        notice = f'<p class="message">{html.escape(message)}</p>'
    else:
        notice = ""
    body = _SIGN_UP_BODY.format(
        notice=notice,
        first_name=html.escape(user.first_name, quote=True),
        last_name=html.escape(user.last_name, quote=True),
        email=html.escape(user.email, quote=True),
        more_info=html.escape(user.more_info or ""),
    )
    return _page("Complete your sign up", body)


def render_error(title: str, detail: str) -> str:
    body = _ERROR_BODY.format(title=html.escape(title), detail=html.escape(detail))
    return _page(title, body)
