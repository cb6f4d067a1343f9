# Global Constants

class Roles:
    ADMIN = "admin"
    PROGRAMMER = "programmer"
    COMMUNITY_MANAGER = "community_manager"
    CONTENT_CREATOR = "content_creator"
    SPIRITUAL_COMPANION = "spiritual_companion"
    STRATEGIST = "strategist"
    DESIGNER = "designer"
    SALES = "sales"
    # Machine callers authenticated with X-API-Key
    SERVICE = "service"

ROLE_LABELS = {
    Roles.ADMIN: "Administrador",
    Roles.PROGRAMMER: "Programador",
    Roles.COMMUNITY_MANAGER: "Community Manager",
    Roles.CONTENT_CREATOR: "Creador de Contenido",
    Roles.SPIRITUAL_COMPANION: "Acompañante Espiritual",
    Roles.STRATEGIST: "Estratega",
    Roles.DESIGNER: "Diseñador",
    Roles.SALES: "Ventas / CRM",
}


class Doctypes:
    CUSTOMER = "Customer"
    TASK = "Task"
    LEAD = "Lead"
    COMMENT = "Comment"
    COMMUNICATION = "Communication"
    SALES_INVOICE = "Sales Invoice"
    PURCHASE_INVOICE = "Purchase Invoice"
    PAYMENT_ENTRY = "Payment Entry"
    ACCOUNT = "Account"
    ITEM = "Item"
    FILE = "File"
    EVENT = "Event"


class TaskStatus:
    OPEN = "Open"
    WORKING = "Working"
    PENDING_REVIEW = "Pending Review"
    OVERDUE = "Overdue"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class InvoiceStatus:
    DRAFT = "Draft"
    UNPAID = "Unpaid"
    OVERDUE = "Overdue"
    PAID = "Paid"
    CANCELLED = "Cancelled"


# Prefix of the placeholder id given to records the ERP has not accepted yet
LOCAL_ID_PREFIX = "LOCAL-"
PENDING_SYNC_MESSAGE = "saved locally, ERP sync pending"

WEBHOOK_SOURCE = "lumen-dashboard"

class WebhookEvents:
    CLIENT_CREATED = "client.created"
    CLIENT_UPDATED = "client.updated"
    CLIENT_DELETED = "client.deleted"
    LEAD_CREATED = "lead.created"
    LEAD_UPDATED = "lead.updated"
    LEAD_STAGE_CHANGED = "lead.stage_changed"
    DELIVERABLE_CREATED = "deliverable.created"
    DELIVERABLE_APPROVED = "deliverable.approved"
    DELIVERABLE_CHANGES_REQUESTED = "deliverable.changes_requested"


LEAD_STATUSES = [
    {"id": "Lead", "title": "Nuevos"},
    {"id": "Open", "title": "En Revisión"},
    {"id": "Replied", "title": "Contactados"},
    {"id": "Opportunity", "title": "Oportunidad"},
    {"id": "Quotation", "title": "Cotización"},
    {"id": "Interested", "title": "Interesados"},
    {"id": "Lost Lead", "title": "Perdidos"},
]
LEAD_STATUS_IDS = [s["id"] for s in LEAD_STATUSES]

DEFAULT_PIPELINES = [
    {
        "id": "prospectos",
        "name": "Prospectos",
        "description": "Pipeline principal para nuevos leads",
        "is_default": True,
        "columns": [
            {"id": "nuevo", "name": "Nuevo", "order": 0},
            {"id": "contactado", "name": "Contactado", "order": 1},
            {"id": "propuesta", "name": "Propuesta Enviada", "order": 2},
            {"id": "negociacion", "name": "En Negociación", "order": 3},
            {"id": "ganado", "name": "Cerrado Ganado", "order": 4},
            {"id": "perdido", "name": "Cerrado Perdido", "order": 5},
        ],
    },
    {
        "id": "clientes-activos",
        "name": "Clientes Activos",
        "description": "Gestión de clientes con proyectos activos",
        "is_default": False,
        "columns": [
            {"id": "onboarding", "name": "Onboarding", "order": 0},
            {"id": "en-proyecto", "name": "En Proyecto", "order": 1},
            {"id": "entrega", "name": "En Entrega", "order": 2},
            {"id": "satisfecho", "name": "Satisfecho", "order": 3},
        ],
    },
    {
        "id": "en-pausa",
        "name": "En Pausa",
        "description": "Leads o clientes pausados temporalmente",
        "is_default": False,
        "columns": [
            {"id": "pausa-temporal", "name": "Pausa Temporal", "order": 0},
            {"id": "sin-presupuesto", "name": "Sin Presupuesto", "order": 1},
            {"id": "reactivar", "name": "Para Reactivar", "order": 2},
            {"id": "descartado", "name": "Descartado", "order": 3},
        ],
    },
]
