from datetime import datetime
from .email_service import send_email
from .settings_service import effective_settings


def _display_name(donation) -> str:
    return "Anonymous" if donation.anonymous else (donation.donor or "Anonymous")


def email_donation_received(donation) -> bool:
    """Tell the organisation's contact address that a donation cleared."""
    general = effective_settings("general")
    admin_email = general.get("contactEmail")
    if not admin_email:
        return False

    name = _display_name(donation)
    when = donation.completed_at or datetime.utcnow()
    lines = [
        "New donation received",
        "",
        f"Amount: {donation.currency} {donation.amount:,}",
        f"Donor: {name}",
        f"Phone: {donation.phone}",
    ]
    if donation.receipt_number:
        lines.append(f"M-Pesa receipt: {donation.receipt_number}")
    if donation.cause is not None:
        lines.append(f"Cause: {donation.cause.title}")
    lines += [f"Date: {when:%Y-%m-%d %H:%M} UTC", "", "This is an automated notification from your donation system."]

    return send_email(
        to=admin_email,
        subject=f"New Donation: {donation.currency} {donation.amount:,} from {name}",
        body="\n".join(lines),
    )


def email_donation_receipt(donation, to: str) -> bool:
    """Thank-you receipt for a donor who left an email address."""
    site = effective_settings("general").get("siteName") or "our foundation"
    body = (
        f"Dear {_display_name(donation)},\n\n"
        f"We have received your generous donation of {donation.currency} {donation.amount:,}.\n\n"
        f"Receipt number: DON-{donation.id:06d}\n"
        + (f"M-Pesa receipt: {donation.receipt_number}\n" if donation.receipt_number else "")
        + f"Date: {(donation.completed_at or datetime.utcnow()):%Y-%m-%d}\n\n"
        f"Your contribution helps {site} continue its work.\n"
        "This email serves as your official receipt.\n"
    )
    return send_email(to=to, subject=f"Donation Receipt - DON-{donation.id:06d}", body=body)
