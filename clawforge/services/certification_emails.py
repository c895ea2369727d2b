"""HTML email templates for the certification workflow."""

from html import escape

LEVEL_LABELS = {"bronze": "Bronze", "silver": "Silver", "gold": "Gold"}
LEVEL_EMOJI = {"bronze": "&#129353;", "silver": "&#129352;", "gold": "&#129351;"}

_P = 'style="color:#333;font-size:16px;line-height:1.6;"'
_SMALL = 'style="color:#666;font-size:14px;line-height:1.5;"'
_BOX = 'style="background:#f8f9fa;border-radius:8px;padding:16px;margin:24px 0;"'


def email_layout(content: str) -> str:
    return f"""<!DOCTYPE html>
<html lang="en">
<head><meta charset="utf-8"><meta name="viewport" content="width=device-width,initial-scale=1"></head>
<body style="margin:0;padding:0;background:#f5f5f5;font-family:-apple-system,BlinkMacSystemFont,'Segoe UI',Roboto,sans-serif;">
  <div style="max-width:560px;margin:40px auto;background:#fff;border-radius:12px;padding:40px;box-shadow:0 1px 3px rgba(0,0,0,.1);">
    <div style="text-align:center;margin-bottom:32px;">
      <h1 style="margin:12px 0 0;color:#111;font-size:24px;">ClawForge</h1>
    </div>
    {content}
    <hr style="border:none;border-top:1px solid #eee;margin:24px 0;">
    <p style="color:#999;font-size:12px;text-align:center;">ClawForge Marketplace</p>
  </div>
</body>
</html>"""


def _button(href: str, label: str) -> str:
    return (
        '<div style="text-align:center;margin:32px 0;">'
        f'<a href="{escape(href)}" style="display:inline-block;background:#111;color:#fff;'
        'padding:14px 32px;border-radius:8px;text-decoration:none;font-weight:600;font-size:16px;">'
        f"{escape(label)}</a></div>"
    )


def _greeting(name: str) -> str:
    return f"<p {_P}>Hello <strong>{escape(name)}</strong>,</p>"


def build_request_filed_email(
    name: str,
    skill_title: str,
    level: str,
    quality_score: int,
    passed_criteria: int,
    total_criteria: int,
) -> str:
    label = LEVEL_LABELS.get(level, level)
    return email_layout(f"""
    {_greeting(name)}
    <p {_P}>You requested <strong>{label} {LEVEL_EMOJI.get(level, "")}</strong> certification
      for &laquo;&nbsp;<strong>{escape(skill_title)}</strong>&nbsp;&raquo;.</p>
    <p {_P}>Our review team is looking at it. Estimated turnaround: <strong>2-3 business days</strong>.</p>
    <div {_BOX}>
      <p style="margin:0 0 8px;color:#666;font-size:14px;"><strong>Current quality score:</strong> {quality_score}/100</p>
      <p style="margin:0;color:#666;font-size:14px;"><strong>Criteria met:</strong> {passed_criteria}/{total_criteria}</p>
    </div>
    <p {_SMALL}>You will be notified as soon as a decision is made.</p>
    """)


def build_bronze_granted_email(name: str, skill_title: str, silver_score: int | None, base_url: str) -> str:
    score_line = (
        f"<p {_P}>Static quality score: <strong>{silver_score}/100</strong>.</p>"
        if silver_score is not None else ""
    )
    return email_layout(f"""
    {_greeting(name)}
    <p {_P}>&laquo;&nbsp;<strong>{escape(skill_title)}</strong>&nbsp;&raquo; passed automated validation
      and is now published with <strong>Bronze {LEVEL_EMOJI["bronze"]}</strong> certification.</p>
    {score_line}
    {_button(f"{base_url}/dashboard/certification", "View certification progress")}
    """)


def build_bronze_rejected_email(name: str, skill_title: str, reasons: list[str], base_url: str) -> str:
    items = "".join(f"<li>{escape(r)}</li>" for r in reasons) or "<li>Unknown error</li>"
    return email_layout(f"""
    {_greeting(name)}
    <p {_P}>&laquo;&nbsp;<strong>{escape(skill_title)}</strong>&nbsp;&raquo; did not pass automated validation.</p>
    <div {_BOX}><ul style="margin:0;padding-left:20px;color:#333;font-size:14px;">{items}</ul></div>
    <p {_SMALL}>Fix the issues above and submit the skill again.</p>
    {_button(f"{base_url}/dashboard", "Open my dashboard")}
    """)


def build_certification_approved_email(name: str, skill_title: str, level: str, base_url: str) -> str:
    label = LEVEL_LABELS.get(level, level)
    return email_layout(f"""
    <div style="text-align:center;margin-bottom:24px;"><span style="font-size:64px;">&#127881;</span></div>
    {_greeting(name)}
    <p {_P}>Congratulations! &laquo;&nbsp;<strong>{escape(skill_title)}</strong>&nbsp;&raquo; is now
      <strong>{label} {LEVEL_EMOJI.get(level, "")}</strong> certified.</p>
    <p {_P}>The badge is displayed on your skill page and boosts its visibility in search.</p>
    {_button(f"{base_url}/dashboard/certification", "See my certifications")}
    """)


def build_gold_approved_email(name: str, skill_title: str, base_url: str) -> str:
    return email_layout(f"""
    <div style="text-align:center;margin-bottom:24px;"><span style="font-size:64px;">&#127942;</span></div>
    {_greeting(name)}
    <p {_P}>Outstanding work! &laquo;&nbsp;<strong>{escape(skill_title)}</strong>&nbsp;&raquo; reached
      <strong>Gold {LEVEL_EMOJI["gold"]}</strong>, the highest ClawForge certification.</p>
    <div {_BOX}>
      <p style="margin:0;color:#666;font-size:14px;">Gold skills are featured on the home page and in curated collections.</p>
    </div>
    {_button(f"{base_url}/dashboard/certification", "Celebrate on my dashboard")}
    """)


def build_certification_rejected_email(
    name: str, skill_title: str, level: str | None, feedback: str, base_url: str,
) -> str:
    target = f" the {LEVEL_LABELS.get(level, level)} level" if level else " certification"
    feedback_block = (
        f'<div {_BOX}><p style="margin:0;color:#333;font-size:14px;"><strong>Reviewer feedback:</strong> '
        f"{escape(feedback)}</p></div>"
        if feedback else ""
    )
    return email_layout(f"""
    {_greeting(name)}
    <p {_P}>&laquo;&nbsp;<strong>{escape(skill_title)}</strong>&nbsp;&raquo; has not reached{target} yet.</p>
    {feedback_block}
    {_button(f"{base_url}/dashboard", "Open my dashboard")}
    """)


def build_changes_requested_email(name: str, skill_title: str, feedback: str, base_url: str) -> str:
    return email_layout(f"""
    {_greeting(name)}
    <p {_P}>A reviewer asked for changes on &laquo;&nbsp;<strong>{escape(skill_title)}</strong>&nbsp;&raquo;.</p>
    <div {_BOX}><p style="margin:0;color:#333;font-size:14px;">{escape(feedback)}</p></div>
    <p {_SMALL}>Update your skill and resubmit it; it will be validated again automatically.</p>
    {_button(f"{base_url}/dashboard", "Update my skill")}
    """)
