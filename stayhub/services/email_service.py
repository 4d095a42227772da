from flask import current_app
from flask_mail import Message
from stayhub import mail
from stayhub.utils.helpers import format_currency


def send_email(to, subject, template):
    """Send email using Flask-Mail"""
    try:
        msg = Message(
            subject=subject,
            recipients=[to],
            html=template,
            sender=current_app.config['MAIL_DEFAULT_SENDER']
        )
        mail.send(msg)
        return True
    except Exception as e:
        current_app.logger.error(f"Failed to send email to {to}: {e}")
        return False


def _booking_details(booking):
    return f"""
            <div style="background-color: #f8f9fa; padding: 20px; border-radius: 5px; margin: 20px 0;">
                <h3>Booking Details</h3>
                <p><strong>Property:</strong> {booking.property.title}</p>
                <p><strong>Location:</strong> {booking.property.location}</p>
                <p><strong>Dates:</strong> {booking.start_date.strftime('%B %d, %Y')} - {booking.end_date.strftime('%B %d, %Y')} ({booking.nights} nights)</p>
                <p><strong>Total Price:</strong> {format_currency(booking.total_price)}</p>
                <p><strong>Booking ID:</strong> {booking.id}</p>
            </div>
    """


def send_welcome_email(user):
    """Send welcome email after registration"""
    template = f"""
    <html>
        <body>
            <h2>Welcome to StayHub!</h2>
            <p>Hi {user.name},</p>
            <p>Your {user.role} account is ready. <a href="{current_app.config['FRONTEND_URL']}">Start exploring</a>.</p>
            <p>Best regards,<br>The StayHub Team</p>
        </body>
    </html>
    """

    return send_email(
        to=user.email,
        subject="Welcome to StayHub",
        template=template
    )


def send_booking_confirmation_email(booking):
    """Send booking confirmation email"""
    template = f"""
    <html>
        <body>
            <h2>Booking Confirmation</h2>
            <p>Hi {booking.user.name},</p>
            <p>Your booking has been confirmed! Here are the details:</p>
            {_booking_details(booking)}
            <p>Best regards,<br>The StayHub Team</p>
        </body>
    </html>
    """

    return send_email(
        to=booking.user.email,
        subject="Booking Confirmed - StayHub",
        template=template
    )


def send_booking_cancellation_email(booking):
    """Send booking cancellation email"""
    reason = f"<p><strong>Reason:</strong> {booking.cancellation_reason}</p>" if booking.cancellation_reason else ""

    template = f"""
    <html>
        <body>
            <h2>Booking Cancelled</h2>
            <p>Hi {booking.user.name},</p>
            <p>Your booking has been cancelled.</p>
            {_booking_details(booking)}
            {reason}
            <p>If you paid for this booking, a refund will be processed within 5-7 business days.</p>
            <p>Best regards,<br>The StayHub Team</p>
        </body>
    </html>
    """

    return send_email(
        to=booking.user.email,
        subject="Booking Cancelled - StayHub",
        template=template
    )


def send_new_booking_notification(booking):
    """Tell the host about a confirmed booking"""
    host = booking.property.host

    template = f"""
    <html>
        <body>
            <h2>New Booking</h2>
            <p>Hi {host.name},</p>
            <p>{booking.user.name} has booked your property.</p>
            {_booking_details(booking)}
            <p>Best regards,<br>The StayHub Team</p>
        </body>
    </html>
    """

    return send_email(
        to=host.email,
        subject="New Booking - StayHub",
        template=template
    )
