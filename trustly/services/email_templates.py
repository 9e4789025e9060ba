from __future__ import annotations

from html import escape
from typing import Optional

DEFAULT_EMAIL_BRAND_COLOR = "#14b8a6"

INVITATION_SUBJECT = "We'd love your feedback! 🌟"

_INVITATION_TEMPLATE = """<!DOCTYPE html>
<html>
  <head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <style>
      body {{ font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Arial, sans-serif; line-height: 1.6; color: #333; margin: 0; padding: 0; background-color: #f4f4f4; }}
      .container {{ max-width: 600px; margin: 0 auto; background: white; padding: 40px 30px; }}
      .header {{ text-align: center; margin-bottom: 30px; }}
      .logo {{ font-size: 24px; font-weight: bold; color: {color}; }}
      .content {{ margin-bottom: 30px; }}
      h1 {{ font-size: 28px; margin: 0 0 20px; color: #1a1a1a; }}
      .button {{ display: inline-block; background: {color}; color: white; padding: 14px 32px; text-decoration: none; border-radius: 8px; font-weight: 600; margin: 20px 0; }}
      .footer {{ text-align: center; color: #666; font-size: 14px; margin-top: 40px; padding-top: 20px; border-top: 1px solid #e0e0e0; }}
    </style>
  </head>
  <body>
    <div class="container">
      <div class="header">
        <div class="logo">{business_name}</div>
      </div>
      <div class="content">
        <h1>Hi {customer_name}! 👋</h1>
        <p>Thank you for being a valued customer of {business_name}!</p>
        <p>We'd really appreciate it if you could take 2 minutes to share your experience with us. Your feedback helps us improve and helps other customers make informed decisions.</p>
        <p style="text-align: center;">
          <a href="{link}" class="button">Share Your Feedback</a>
        </p>
        <p style="font-size: 14px; color: #666;">This should only take about 2 minutes. We really value your input!</p>
      </div>
      <div class="footer">
        <p>This email was sent by {business_name}</p>
        <p>If you have any questions, please feel free to reach out.</p>
      </div>
    </div>
  </body>
</html>
"""

_NOTICE_TEMPLATE = """<!DOCTYPE html>
<html>
  <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Arial, sans-serif; color: #333;">
    <h2 style="color: {color};">{heading}</h2>
    {body}
    <p style="font-size: 13px; color: #666;">Sent by Trustly for {business_name}.</p>
  </body>
</html>
"""


def render_invitation(
    *, business_name: str, brand_color: Optional[str], customer_name: str, link: str
) -> str:
    return _INVITATION_TEMPLATE.format(
        color=escape(brand_color or DEFAULT_EMAIL_BRAND_COLOR, quote=True),
        business_name=escape(business_name),
        customer_name=escape(customer_name),
        link=escape(link, quote=True),
    )


def render_notice(
    *, business_name: str, brand_color: Optional[str], heading: str, paragraphs: list[str]
) -> str:
    body = "\n    ".join(f"<p>{escape(text)}</p>" for text in paragraphs)
    return _NOTICE_TEMPLATE.format(
        color=escape(brand_color or DEFAULT_EMAIL_BRAND_COLOR, quote=True),
        heading=escape(heading),
        body=body,
        business_name=escape(business_name),
    )
