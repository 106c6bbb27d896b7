# Email templates used by the notification providers.

from datetime import datetime
from html import escape
from string import Template
from typing import Optional
from urllib.parse import urlsplit

from .models import ChangeNotification, RenderedEmail


SUBJECT_TEMPLATE = Template("URL Change Detected: $hostname")


HTML_TEMPLATE = Template("""
<!DOCTYPE html>
<html>
<head>
  <style>
    body { font-family: Arial, sans-serif; color: #333; }
    .container { max-width: 600px; margin: 0 auto; padding: 20px; }
    .header { background-color: #f0f0f0; padding: 15px; border-radius: 5px; margin-bottom: 20px; }
    .header h2 { margin: 0; color: #d9534f; }
    .details { background-color: #f9f9f9; padding: 15px; border-left: 4px solid #5cb85c; margin-bottom: 20px; }
    .details p { margin: 8px 0; }
    .stats { display: flex; gap: 20px; margin: 15px 0; }
    .stat { flex: 1; padding: 10px; background-color: #f0f0f0; border-radius: 5px; text-align: center; }
    .stat-number { font-size: 24px; font-weight: bold; }
    .stat-label { color: #666; font-size: 12px; text-transform: uppercase; }
    .added { color: #28a745; }
    .removed { color: #dc3545; }
    .diff-preview { background-color: #f5f5f5; padding: 10px; border-radius: 5px; font-family: monospace; font-size: 12px; max-height: 300px; overflow: auto; white-space: pre-wrap; }
    .footer { color: #999; font-size: 12px; margin-top: 30px; text-align: center; }
    a { color: #007bff; text-decoration: none; }
  </style>
</head>
<body>
  <div class="container">
    <div class="header">
      <h2>&#128276; URL Change Detected!</h2>
    </div>

    <div class="details">
      <p><strong>URL:</strong><br/><a href="$url">$url</a></p>
      <p><strong>Detected at:</strong><br/>$detected_at</p>
    </div>

    <div class="stats">
      <div class="stat">
        <div class="stat-number added">+$lines_added</div>
        <div class="stat-label">Lines Added</div>
      </div>
      <div class="stat">
        <div class="stat-number removed">-$lines_removed</div>
        <div class="stat-label">Lines Removed</div>
      </div>
      <div class="stat">
        <div class="stat-number">$total_changes</div>
        <div class="stat-label">Total Changes</div>
      </div>
    </div>
$preview_block
    <div class="footer">
      <p>This is an automated message from URL Monitor.<br/>
      View the full diff in your URL Monitor application.</p>
    </div>
  </div>
</body>
</html>
""")


PREVIEW_TEMPLATE = Template("""
    <div style="margin-bottom: 20px;">
      <p><strong>Change Preview:</strong></p>
      <div class="diff-preview">$diff_preview</div>
    </div>
""")


TEXT_TEMPLATE = Template("""URL Change Detected!

URL: $url
Detected at: $detected_at

+$lines_added lines added, -$lines_removed lines removed ($total_changes total)
$preview
--
This is an automated message from URL Monitor.
""")


def hostname_of(url: str) -> str:
    return urlsplit(url).hostname or url


def format_timestamp(timestamp: Optional[str]) -> str:
    """Human-readable detection time; falls back to the raw value."""
    if not timestamp:
        return "unknown"
    try:
        moment = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    except ValueError:
        return timestamp
    if moment.tzinfo is None:
        return moment.strftime("%Y-%m-%d %H:%M:%S")
    return moment.strftime("%Y-%m-%d %H:%M:%S %Z").strip()


def render_change_email(notification: ChangeNotification) -> RenderedEmail:
    detected_at = format_timestamp(notification.timestamp)

    preview_block = ""
    if notification.diff_preview:
        preview_block = PREVIEW_TEMPLATE.substitute(
            diff_preview=escape(notification.diff_preview),
        )

    html = HTML_TEMPLATE.substitute(
        url=escape(notification.url),
        detected_at=escape(detected_at),
        lines_added=notification.lines_added,
        lines_removed=notification.lines_removed,
        total_changes=notification.total_changes,
        preview_block=preview_block,
    )
    text = TEXT_TEMPLATE.substitute(
        url=notification.url,
        detected_at=detected_at,
        lines_added=notification.lines_added,
        lines_removed=notification.lines_removed,
        total_changes=notification.total_changes,
        preview=f"\n{notification.diff_preview}\n" if notification.diff_preview else "",
    )
    return RenderedEmail(
        recipient=notification.email,
        subject=SUBJECT_TEMPLATE.substitute(hostname=hostname_of(notification.url)),
        html=html,
        text=text,
    )
