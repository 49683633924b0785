"""
Swagger/OpenAPI configuration for the PhysioCare clinic API
"""

SWAGGER_CONFIG = {
    "headers": [],
    "specs": [
        {
            "endpoint": "apispec",
            "route": "/apispec.json",
            "rule_filter": lambda rule: True,
            "model_filter": lambda tag: True,
        }
    ],
    "static_url_path": "/flasgger_static",
    "swagger_ui": True,
    "specs_route": "/api/docs",
}

SWAGGER_TEMPLATE = {
    "swagger": "2.0",
    "info": {
        "title": "PhysioCare Clinic API",
        "description": "REST API for the PhysioCare clinic: patients, staff, appointments, invoices, inventory, exercise programmes and the patient portal",
        "contact": {"email": "support@physiocare.com"},
        "version": "1.0.0",
    },
    "host": "",
    "basePath": "/",
    "schemes": ["http", "https"],
    "securityDefinitions": {
        "Bearer": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
            "description": 'JWT Authorization header using the Bearer scheme. Example: "Authorization: Bearer {token}"',
        }
    },
    "tags": [
        {"name": "Auth", "description": "Staff and patient login, password changes"},
        {"name": "Staff", "description": "Staff directory"},
        {"name": "Patients", "description": "Patient records, avatars and clinical notes"},
        {"name": "Appointments", "description": "Calendar bookings"},
        {"name": "Invoices", "description": "Billing with line items and discounts"},
        {"name": "Products", "description": "Inventory"},
        {"name": "Exercises", "description": "Exercise catalog and patient assignments"},
        {"name": "Settings", "description": "Clinic settings"},
        {"name": "Dashboard", "description": "Clinic statistics"},
        {"name": "Reports", "description": "Spreadsheet exports"},
        {"name": "Patient Portal", "description": "Endpoints used by logged-in patients"},
        {"name": "Utility", "description": "Health checks"},
    ],
    "definitions": {
        "Error": {
            "type": "object",
            "properties": {
                "success": {"type": "boolean", "example": False},
                "message": {"type": "string"},
            },
        },
        "Success": {
            "type": "object",
            "properties": {
                "success": {"type": "boolean", "example": True},
                "message": {"type": "string"},
                "data": {"type": "object"},
            },
        },
        "Patient": {
            "type": "object",
            "properties": {
                "id": {"type": "integer"},
                "full_name": {"type": "string"},
                "email": {"type": "string"},
                "phone_number": {"type": "string"},
                "gender": {"type": "string"},
                "date_of_birth": {"type": "string", "format": "date"},
                "staff_id": {"type": "integer"},
            },
        },
        "Invoice": {
            "type": "object",
            "properties": {
                "id": {"type": "integer"},
                "patient_id": {"type": "integer"},
                "status": {"type": "string", "enum": ["Unpaid", "Paid"]},
                "subtotal": {"type": "number"},
                "discount_type": {"type": "string", "enum": ["none", "percent", "flat"]},
                "discount_value": {"type": "number"},
                "discount_amount": {"type": "number"},
                "total_amount": {"type": "number"},
            },
        },
        "Product": {
            "type": "object",
            "properties": {
                "id": {"type": "integer"},
                "name": {"type": "string"},
                "sku": {"type": "string"},
                "category": {"type": "string"},
                "unit_price": {"type": "number"},
                "stock_level": {"type": "integer"},
            },
        },
    },
}
