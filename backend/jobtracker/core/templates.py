# backend/jobtracker/core/templates.py
"""
Email templates used by the dispatcher.
- Plain str.format templates; every substituted value is HTML-escaped by the
  caller (dispatch/render.py) except the pre-rendered *_block fragments.
- Keys: page, contact_block, job_block, contact_button, job_button, plain_body
"""

from __future__ import annotations

from typing import Dict

TEMPLATES: Dict[str, str] = {}

_STYLE = """
    body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #333; margin: 0; padding: 0; background-color: #f9fafb; }
    .container { max-width: 600px; margin: 20px auto; background: white; border-radius: 8px; overflow: hidden; box-shadow: 0 2px 4px rgba(0,0,0,0.1); }
    .header { background: linear-gradient(135deg, #2563eb 0%, #1d4ed8 100%); color: white; padding: 24px; text-align: center; }
    .header h1 { margin: 0; font-size: 24px; font-weight: 700; }
    .content { padding: 32px 24px; }
    .reminder-info { background: #f8fafc; border-radius: 8px; padding: 20px; margin: 20px 0; border-left: 4px solid #2563eb; }
    .context-info { background: #ecfdf5; border-radius: 8px; padding: 16px; margin: 16px 0; }
    .message-box { background: #fffbeb; border-radius: 8px; padding: 20px; margin: 20px 0; border: 1px solid #fbbf24; }
    .message-box h3 { color: #92400e; margin: 0 0 12px 0; }
    .message { white-space: pre-wrap; font-family: monospace; background: white; padding: 16px; border-radius: 4px; border: 1px solid #d1d5db; }
    .links { background: #f1f5f9; padding: 20px; border-radius: 8px; margin: 20px 0; }
    .btn { display: inline-block; padding: 12px 24px; background: #2563eb; color: white; text-decoration: none; border-radius: 6px; font-weight: 600; margin: 8px 8px 8px 0; }
    .footer { background: #f8fafc; padding: 20px 24px; text-align: center; font-size: 14px; color: #6b7280; border-top: 1px solid #e5e7eb; }
"""

# {{ }} survive str.format as literal braces
TEMPLATES["page"] = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{subject}</title>
  <style>""" + _STYLE.replace("{", "{{").replace("}", "}}") + """</style>
</head>
<body>
  <div class="container">
    <div class="header">
      <h1>Job Tracker Reminder</h1>
      <p>Time to follow up!</p>
    </div>
    <div class="content">
      <p>Hi there!</p>
      <p>This is your scheduled reminder from Job Tracker.</p>
      <div class="reminder-info">
        <h3>Reminder Details</h3>
        <p><strong>Scheduled for:</strong> {scheduled_for}</p>
        {contact_block}
        {job_block}
      </div>
      <div class="message-box">
        <h3>Your Message (Ready to Copy)</h3>
        <p class="message">{user_message}</p>
      </div>
      <div class="links">
        <h3>Quick Actions</h3>
        <a href="{app_url}" class="btn">Open Job Tracker</a>
        {contact_button}
        {job_button}
      </div>
      <p>Good luck with your follow-up!</p>
    </div>
    <div class="footer">
      <p>This reminder was sent by Job Tracker to <strong>{recipient}</strong></p>
      <p>You can manage your reminders in the <a href="{app_url}">Job Tracker app</a></p>
    </div>
  </div>
</body>
</html>
"""

TEMPLATES["contact_block"] = """<div class="context-info">
          <h4>Contact Information</h4>
          <p><strong>Name:</strong> {name}</p>{email_line}{company_line}
        </div>"""

TEMPLATES["job_block"] = """<div class="context-info">
          <h4>Job Information</h4>
          <p><strong>Position:</strong> {position}</p>{company_line}{location_line}
        </div>"""

TEMPLATES["contact_button"] = """<a href="{app_url}?contact={contact_id}" class="btn">View Contact</a>"""
TEMPLATES["job_button"] = """<a href="{app_url}?job={job_id}" class="btn">View Job</a>"""

TEMPLATES["plain_body"] = """Reminder: {about}

{user_message}
"""

__all__ = ["TEMPLATES"]
