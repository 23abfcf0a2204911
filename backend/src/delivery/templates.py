"""Plain-text renderings of every outbound message.

Templates never include sender identity, fingerprints or the sender's
original wording. The feedback mail carries only the approved text.
"""

from config import get_settings
from domain.delivery.ports import RenderedMessage


def recipient_link(token: str) -> str:
    return f"{get_settings().PUBLIC_BASE_URL.rstrip('/')}/feedback/{token}"


def sender_link(token: str) -> str:
    return f"{get_settings().PUBLIC_BASE_URL.rstrip('/')}/feedback/sender/{token}"


def render_feedback(approved_text: str, recipient_token: str) -> RenderedMessage:
    body = f"""Someone sent you anonymous feedback:

{approved_text}

You can reply once, or report this message, here:
{recipient_link(recipient_token)}

The sender's identity is not known to you and is never shared.
"""
    return RenderedMessage(kind="feedback", subject="You've received anonymous feedback", body=body)


def render_sender_confirmation(sender_token: str) -> RenderedMessage:
    body = f"""Your feedback was received.

Review the suggested wording, edit it, or approve it for delivery here:
{sender_link(sender_token)}

Keep this link private. Anyone holding it can act on your submission.
Your email address is stored encrypted and deleted automatically.
"""
    return RenderedMessage(kind="sender_confirmation", subject="Your anonymous feedback", body=body)


def render_delivered_notice(sender_token: str) -> RenderedMessage:
    body = f"""Your feedback has been delivered.

If the recipient replies, you'll see it here:
{sender_link(sender_token)}
"""
    return RenderedMessage(kind="delivered_notice", subject="Your feedback was delivered", body=body)


def render_response_notice(sender_token: str) -> RenderedMessage:
    body = f"""The recipient replied to your anonymous feedback.

Read the reply here:
{sender_link(sender_token)}
"""
    return RenderedMessage(kind="response_notice", subject="Response to your feedback", body=body)


def render_report_confirmation(directive_level: str, temporary: bool) -> RenderedMessage:
    if directive_level == "global":
        scope = "You will no longer receive anonymous feedback through this service"
    else:
        scope = "The sender of this message can no longer send you feedback"
    if temporary:
        scope += " for the period you selected"
    body = f"""Thanks for your report. We've recorded it for review.

{scope}. Messages you have already received are not affected.
"""
    return RenderedMessage(kind="report_confirmation", subject="We received your report", body=body)
