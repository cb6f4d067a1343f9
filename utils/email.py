import resend
from html import escape
from datetime import datetime
from typing import List, Optional, Union
from config import config
from logging_config import get_logger

logger = get_logger("email")

# Set the API key for the resend SDK
if config.RESEND_API_KEY:
    resend.api_key = config.RESEND_API_KEY


def send_email(to: Union[str, List[str]], subject: str, html_content: str):
    """
    Utility function to send an email using Resend.
    Does nothing if RESEND_API_KEY is not configured.
    """
    recipients = [to] if isinstance(to, str) else list(to)
    if not recipients:
        logger.warning(f"No recipients for email '{subject}', skipping")
        return None

    if not config.RESEND_API_KEY:
        logger.warning(f"Resend API key not configured. Mock sending email to {recipients} with subject '{subject}'")
        return None

    try:
        params = {
            "from": config.MAIL_FROM,
            "to": recipients,
            "subject": subject,
            "html": html_content,
        }
        response = resend.Emails.send(params)
        logger.info(f"Email sent successfully to {recipients}", extra={"data": {"email_id": response.get("id")}})
        return response
    except Exception as e:
        logger.error(f"Failed to send email to {recipients}: {e}", exc_info=True)
        return None


def base_email_template(title: str, preheader: str, content: str, cta_url: str = None, cta_text: str = None, footer_text: str = "") -> str:
    """
    Responsive HTML skeleton shared by every Lumen email.
    """
    cta_html = f"""
    <div style="text-align: center; margin: 32px 0;">
        <a href="{cta_url}" style="background: linear-gradient(135deg, #7C3AED 0%, #2563EB 100%); color: #ffffff; padding: 14px 28px; text-decoration: none; border-radius: 30px; font-weight: 600; font-size: 15px; display: inline-block;">
            {cta_text}
        </a>
    </div>
    """ if cta_url and cta_text else ""

    return f"""
    <!DOCTYPE html>
    <html lang="es">
    <head>
        <meta charset="UTF-8">
        <meta name="viewport" content="width=device-width, initial-scale=1.0">
        <title>{title}</title>
    </head>
    <body style="font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; background-color: #f8f8f8; margin: 0; padding: 0; line-height: 1.6;">
        <div style="display: none; max-height: 0px; overflow: hidden;">
            {preheader}
        </div>
        <table width="100%" cellpadding="0" cellspacing="0" border="0" style="background-color: #f8f8f8; padding: 40px 20px;">
            <tr>
                <td align="center">
                    <table width="100%" cellpadding="0" cellspacing="0" border="0" style="max-width: 600px; background-color: #ffffff; border-radius: 16px; overflow: hidden;">
                        <tr>
                            <td style="background: linear-gradient(135deg, #7C3AED 0%, #2563EB 100%); padding: 32px; text-align: center;">
                                <h1 style="color: #ffffff; font-size: 26px; margin: 0; font-weight: 700;">Lumen Creativo</h1>
                            </td>
                        </tr>
                        <tr>
                            <td style="padding: 40px 32px; color: #4a4a4a;">
                                {content}
                                {cta_html}
                            </td>
                        </tr>
                        <tr>
                            <td style="background-color: #f8f8f8; padding: 24px 32px; text-align: center; border-top: 1px solid #eee;">
                                <p style="color: #888; font-size: 13px; margin: 0;">
                                    {footer_text}<br>
                                    © {datetime.now().year} Lumen Creativo. Todos los derechos reservados.
                                </p>
                            </td>
                        </tr>
                    </table>
                </td>
            </tr>
        </table>
    </body>
    </html>
    """


def send_lead_confirmation_email(to_email: str, nombre: str):
    """Thank-you email to a prospect who filled the website form."""
    subject = "✨ Recibimos tu mensaje - Lumen Creativo"

    content = f"""
        <h2 style="color: #1a1a1a; font-size: 22px; margin-top: 0;">¡Hola {escape(nombre)}! 👋</h2>
        <p>Gracias por contactarnos. Recibimos tu mensaje y estamos emocionados de conocer más sobre tu proyecto.</p>
        <p>Nuestro equipo revisará tu caso y te responderemos en las próximas <strong style="color: #7C3AED;">24 horas hábiles</strong> con una propuesta personalizada.</p>
    """

    html_content = base_email_template(
        title="Recibimos tu mensaje",
        preheader="Te responderemos en 24 horas hábiles",
        content=content,
        cta_url="https://instagram.com/lumencreativo.lat",
        cta_text="Síguenos en Instagram →",
        footer_text="Este email fue enviado porque completaste nuestro formulario de contacto."
    )
    return send_email(to_email, subject, html_content)


def send_team_lead_notification_email(lead: dict, lead_id: str):
    """Internal alert with every field of an inbound lead."""
    nombre = lead.get("nombre") or ""
    institucion = lead.get("institucion") or "Sin institución"
    subject = f"🚀 Nuevo Lead: {nombre} - {institucion}"

    rows = [
        ("Nombre", nombre),
        ("Email", lead.get("email")),
        ("WhatsApp", lead.get("whatsapp")),
        ("Institución", institucion),
        ("Instagram", lead.get("instagram") or "No especificado"),
        ("Necesidad", lead.get("necesidad") or "No especificado"),
        ("ERPNext", lead_id),
    ]
    table = "".join(
        f"<p style=\"margin: 0 0 8px 0;\"><strong>{label}:</strong> {escape(str(value or ''))}</p>"
        for label, value in rows
    )

    html_content = base_email_template(
        title="Nuevo Lead",
        preheader=f"{nombre} completó el formulario",
        content=table,
        cta_url=f"{config.FRONTEND_URL}/dashboard/leads",
        cta_text="Ver en el CRM",
    )
    return send_email(config.TEAM_NOTIFICATION_EMAILS, subject, html_content)


def send_deliverable_status_email(client_name: str, title: str, status: str, deliverable_id: str, feedback: Optional[str] = None):
    """Tells the team that a client approved or asked for changes."""
    is_approved = status == "approved"
    status_text = "✅ APROBADO" if is_approved else "⚠️ CAMBIOS SOLICITADOS"
    color = "#22c55e" if is_approved else "#f59e0b"
    subject = f"[{client_name}] {status_text}: {title}"

    feedback_html = f"<p><strong>Comentarios:</strong><br>{escape(feedback)}</p>" if feedback else ""
    content = f"""
        <h2 style="color: #1a1a1a; font-size: 20px; margin-top: 0;">Actualización de Diseño</h2>
        <p><strong>Cliente:</strong> {escape(client_name)}</p>
        <p><strong>Diseño:</strong> {escape(title)}</p>
        <p style="color: {color}; font-weight: bold;">Estado: {status_text}</p>
        {feedback_html}
    """

    html_content = base_email_template(
        title="Actualización de Diseño",
        preheader=f"{client_name}: {status_text}",
        content=content,
        cta_url=f"{config.FRONTEND_URL}/dashboard/deliverables?id={deliverable_id}",
        cta_text="Ver en Dashboard",
    )
    return send_email(config.TEAM_NOTIFICATION_EMAILS, subject, html_content)
