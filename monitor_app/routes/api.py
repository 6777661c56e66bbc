"""
REST API endpoints for the Site Monitor.

All endpoints return JSON responses and follow REST conventions.

Endpoints:
    GET    /api/health                  - Health check
    GET    /api/customers               - List customers (ordered by name)
    POST   /api/customers               - Create a customer
    GET    /api/customers/<id>          - Get a customer
    PUT    /api/customers/<id>          - Update a customer
    DELETE /api/customers/<id>          - Delete a customer
    GET    /api/websites                - List websites (optional status/speed filters)
    POST   /api/websites                - Add a website
    GET    /api/websites/<id>           - Get a website with its latest metrics
    DELETE /api/websites/<id>           - Delete a website
    GET    /api/websites/<id>/metrics   - Metric history of a website
    GET    /api/metrics                 - Most recent metric records
    GET    /api/sweep                   - Sweep status and last report
    POST   /api/sweep                   - Check every website sequentially
"""

import logging
import os
import re
from datetime import datetime
from urllib.parse import urlparse

from flask import Blueprint, Response, current_app, jsonify, request

from monitor_app import db, get_sweep_controller, repository
from monitor_app.errors import ConcurrentSweepRejected, PersistenceFailure
from monitor_app.filtering import ALL, check_state, filter_websites
from monitor_app.models import Customer, Website, ensure_utc
from monitor_app.thresholds import SiteStatus, SpeedTier, describe_metric

logger = logging.getLogger(__name__)

api_bp = Blueprint("api", __name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

CUSTOMER_TEXT_FIELDS = {
    "name": 200,
    "company_name": 200,
    "email": 254,
    "phone": 50,
    "address": 255,
    "city": 100,
    "state": 100,
    "postal_code": 20,
    "country": 100,
    "notes": None,
}

STATUS_FILTERS = [ALL] + [s.value for s in SiteStatus]
SPEED_FILTERS = [ALL] + [s.value for s in SpeedTier]


# -----------------------------------------------------------------------------
# Helper Functions
# -----------------------------------------------------------------------------

def validate_required(data: dict, required_fields: list[str]) -> tuple[bool, str | None]:
    """Check that every required field holds non-whitespace content."""
    for field in required_fields:
        value = data.get(field)
        if not value or (isinstance(value, str) and not value.strip()):
            return False, f"'{field}' is required"
    return True, None


def validate_customer_data(data: dict, required_fields: list[str] | None = None) -> tuple[bool, str | None]:
    """
    Validate customer data from request.

    Args:
        data: Dictionary containing customer data.
        required_fields: List of fields that must be present.

    Returns:
        Tuple of (is_valid, error_message).
    """
    if required_fields:
        is_valid, error = validate_required(data, required_fields)
        if not is_valid:
            return is_valid, error

    for field, max_length in CUSTOMER_TEXT_FIELDS.items():
        value = data.get(field)
        if value is None:
            continue
        if not isinstance(value, str):
            return False, f"'{field}' must be a string"
        if max_length and len(value) > max_length:
            return False, f"'{field}' must be {max_length} characters or less"

    if "email" in data and not EMAIL_PATTERN.match((data["email"] or "").strip()):
        return False, "Invalid email address"

    if data.get("last_contacted_at"):
        try:
            parse_datetime(data["last_contacted_at"])
        except (ValueError, AttributeError):
            return False, "Invalid last_contacted_at format. Use ISO format (YYYY-MM-DDTHH:MM:SS)"

    return True, None


def is_valid_url(value: str) -> bool:
    """Accept absolute http(s) URLs with a host."""
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def validate_website_data(data: dict) -> tuple[bool, str | None]:
    """
    Validate website data from request.

    Args:
        data: Dictionary containing website data.

    Returns:
        Tuple of (is_valid, error_message).
    """
    is_valid, error = validate_required(data, ["name", "url"])
    if not is_valid:
        return is_valid, error

    if not isinstance(data["name"], str) or len(data["name"]) > 200:
        return False, "Name must be a string of 200 characters or less"

    if not isinstance(data["url"], str) or not is_valid_url(data["url"].strip()):
        return False, "Please enter a valid URL including http:// or https://"

    customer_id = data.get("customer_id")
    if customer_id is not None:
        if not isinstance(customer_id, int) or isinstance(customer_id, bool):
            return False, "customer_id must be an integer"
        if db.session.get(Customer, customer_id) is None:
            return False, "Customer not found"

    return True, None


def parse_datetime(date_string: str | None) -> datetime | None:
    """
    Parse an ISO-8601 string to a UTC datetime.

    Args:
        date_string: ISO format date string or None.

    Returns:
        datetime object or None.
    """
    if not date_string:
        return None
    parsed = datetime.fromisoformat(date_string.replace("Z", "+00:00"))
    return ensure_utc(parsed)


def _clean(value):
    return value.strip() if isinstance(value, str) else value


def serialize_website(website: Website, index, last_outcomes) -> dict:
    """Website fields plus its latest metric, classification and check state."""
    metric = index.get(website.id)
    data = website.to_dict()
    data["latest_metric"] = metric.to_dict() if metric is not None else None
    data["classification"] = describe_metric(metric) if metric is not None else None
    data["check_state"] = check_state(website.id, index, last_outcomes).value
    outcome = last_outcomes.get(website.id)
    data["last_error"] = outcome.reason if outcome is not None and not outcome.ok else None
    return data


# -----------------------------------------------------------------------------
# API Endpoints
# -----------------------------------------------------------------------------

@api_bp.route("/health", methods=["GET"])
def health_check() -> tuple[Response, int]:
    """Health check endpoint for deployment verification."""
    return jsonify({
        "status": "healthy",
        "environment": os.getenv("ENVIRONMENT", "unknown"),
        "version": os.getenv("APP_VERSION", "unknown"),
        "sweep": get_sweep_controller().status.value
    }), 200


# Customers ------------------------------------------------------------------

@api_bp.route("/customers", methods=["GET"])
def get_customers() -> tuple[Response, int]:
    """List all customers ordered by name."""
    logger.info("GET /api/customers - Fetching all customers")

    customers = repository.list_customers()
    return jsonify({
        "customers": [customer.to_dict() for customer in customers],
        "count": len(customers)
    }), 200


@api_bp.route("/customers/<int:customer_id>", methods=["GET"])
def get_customer(customer_id: int) -> tuple[Response, int]:
    """
    Get a single customer by ID, with the ids of its websites.

    Returns:
        JSON response with customer data and 200 status code,
        or error message and 404 if not found.
    """
    logger.info(f"GET /api/customers/{customer_id} - Fetching customer")

    customer = db.session.get(Customer, customer_id)
    if not customer:
        logger.warning(f"Customer {customer_id} not found")
        return jsonify({"error": "Customer not found"}), 404

    data = customer.to_dict()
    data["website_ids"] = [website.id for website in customer.websites]
    return jsonify(data), 200


@api_bp.route("/customers", methods=["POST"])
def create_customer() -> tuple[Response, int]:
    """
    Create a new customer.

    Request Body (JSON):
        name: Contact name (required)
        email: Contact email (required)
        company_name, phone, address, city, state, postal_code,
        country, notes: Optional text fields
        last_contacted_at: Optional ISO datetime

    Returns:
        JSON response with created customer and 201 status code,
        or error message and 400 if validation fails.
    """
    logger.info("POST /api/customers - Creating new customer")

    data = request.get_json(silent=True)
    if not data:
        return jsonify({"error": "Request body must be JSON"}), 400

    is_valid, error = validate_customer_data(data, required_fields=["name", "email"])
    if not is_valid:
        logger.warning(f"Validation failed: {error}")
        return jsonify({"error": error}), 400

    customer = Customer(
        **{field: _clean(data.get(field)) for field in CUSTOMER_TEXT_FIELDS if field != "country"},
        country=_clean(data.get("country")) or "",
        last_contacted_at=parse_datetime(data.get("last_contacted_at"))
    )
    repository.save_customer(customer)

    logger.info(f"Created customer with ID: {customer.id}")
    return jsonify(customer.to_dict()), 201


@api_bp.route("/customers/<int:customer_id>", methods=["PUT"])
def update_customer(customer_id: int) -> tuple[Response, int]:
    """
    Update an existing customer. Only fields present in the body change.

    Returns:
        JSON response with updated customer and 200 status code,
        or error message and 404/400 if not found or validation fails.
    """
    logger.info(f"PUT /api/customers/{customer_id} - Updating customer")

    customer = db.session.get(Customer, customer_id)
    if not customer:
        logger.warning(f"Customer {customer_id} not found")
        return jsonify({"error": "Customer not found"}), 404

    data = request.get_json(silent=True)
    if not data:
        return jsonify({"error": "Request body must be JSON"}), 400

    required = [field for field in ("name", "email") if field in data]
    is_valid, error = validate_customer_data(data, required_fields=required)
    if not is_valid:
        logger.warning(f"Validation failed: {error}")
        return jsonify({"error": error}), 400

    for field in CUSTOMER_TEXT_FIELDS:
        if field in data:
            setattr(customer, field, _clean(data[field]))
    if "country" in data and customer.country is None:
        customer.country = ""
    if "last_contacted_at" in data:
        customer.last_contacted_at = parse_datetime(data["last_contacted_at"])

    repository.save_customer(customer)

    logger.info(f"Updated customer {customer_id}")
    return jsonify(customer.to_dict()), 200


@api_bp.route("/customers/<int:customer_id>", methods=["DELETE"])
def delete_customer(customer_id: int) -> tuple[Response, int]:
    """Delete a customer. Its websites are kept without an owner."""
    logger.info(f"DELETE /api/customers/{customer_id} - Deleting customer")

    customer = db.session.get(Customer, customer_id)
    if not customer:
        logger.warning(f"Customer {customer_id} not found")
        return jsonify({"error": "Customer not found"}), 404

    repository.delete_customer(customer)

    logger.info(f"Deleted customer {customer_id}")
    return jsonify({"message": "Customer deleted successfully"}), 200


# Websites -------------------------------------------------------------------

@api_bp.route("/websites", methods=["GET"])
def get_websites() -> tuple[Response, int]:
    """
    List websites with their latest metric.

    Query Parameters:
        status: all, good, poor, very_poor
        speed: all, fast, medium, slow

    When either parameter is given the filtered view is returned: only
    websites that have metrics and match both selectors. Without
    parameters every website is listed.
    """
    logger.info("GET /api/websites - Fetching websites")

    status_filter = request.args.get("status")
    speed_filter = request.args.get("speed")

    if status_filter is not None and status_filter not in STATUS_FILTERS:
        return jsonify({"error": f"Invalid status filter. Must be one of: {STATUS_FILTERS}"}), 400
    if speed_filter is not None and speed_filter not in SPEED_FILTERS:
        return jsonify({"error": f"Invalid speed filter. Must be one of: {SPEED_FILTERS}"}), 400

    controller = get_sweep_controller()
    websites = repository.list_websites()
    index = controller.latest_metrics()
    if status_filter is not None or speed_filter is not None:
        websites = filter_websites(
            websites,
            index,
            status_filter=status_filter or ALL,
            speed_filter=speed_filter or ALL
        )

    last_outcomes = controller.last_outcomes
    logger.info(f"Found {len(websites)} websites")
    return jsonify({
        "websites": [serialize_website(website, index, last_outcomes) for website in websites],
        "count": len(websites)
    }), 200


@api_bp.route("/websites/<int:website_id>", methods=["GET"])
def get_website(website_id: int) -> tuple[Response, int]:
    """Get a single website with its latest metric."""
    logger.info(f"GET /api/websites/{website_id} - Fetching website")

    website = db.session.get(Website, website_id)
    if not website:
        logger.warning(f"Website {website_id} not found")
        return jsonify({"error": "Website not found"}), 404

    controller = get_sweep_controller()
    index = controller.latest_metrics()
    return jsonify(serialize_website(website, index, controller.last_outcomes)), 200


@api_bp.route("/websites", methods=["POST"])
def create_website() -> tuple[Response, int]:
    """
    Add a website to track.

    Request Body (JSON):
        name: Display name (required)
        url: Absolute http(s) URL (required)
        customer_id: Owning customer (optional)

    Returns:
        JSON response with created website and 201 status code,
        or error message and 400 if validation fails.
    """
    logger.info("POST /api/websites - Creating new website")

    data = request.get_json(silent=True)
    if not data:
        return jsonify({"error": "Request body must be JSON"}), 400

    is_valid, error = validate_website_data(data)
    if not is_valid:
        logger.warning(f"Validation failed: {error}")
        return jsonify({"error": error}), 400

    website = Website(
        name=data["name"].strip(),
        url=data["url"].strip(),
        customer_id=data.get("customer_id")
    )
    repository.save_website(website)

    logger.info(f"Created website with ID: {website.id}")
    return jsonify(website.to_dict()), 201


@api_bp.route("/websites/<int:website_id>", methods=["DELETE"])
def delete_website(website_id: int) -> tuple[Response, int]:
    """Delete a website and its metric history."""
    logger.info(f"DELETE /api/websites/{website_id} - Deleting website")

    website = db.session.get(Website, website_id)
    if not website:
        logger.warning(f"Website {website_id} not found")
        return jsonify({"error": "Website not found"}), 404

    repository.delete_website(website)
    get_sweep_controller().forget(website_id)

    logger.info(f"Deleted website {website_id}")
    return jsonify({"message": "Website deleted successfully"}), 200


# Metrics --------------------------------------------------------------------

@api_bp.route("/websites/<int:website_id>/metrics", methods=["GET"])
def get_website_metrics(website_id: int) -> tuple[Response, int]:
    """Metric history of one website, newest first."""
    logger.info(f"GET /api/websites/{website_id}/metrics - Fetching history")

    if db.session.get(Website, website_id) is None:
        logger.warning(f"Website {website_id} not found")
        return jsonify({"error": "Website not found"}), 404

    metrics = repository.metric_history(website_id)
    return jsonify({
        "metrics": [metric.to_dict() for metric in metrics],
        "count": len(metrics)
    }), 200


@api_bp.route("/metrics", methods=["GET"])
def get_metrics() -> tuple[Response, int]:
    """
    Most recent metric records across all websites.

    Query Parameters:
        limit: Maximum number of records (default RECENT_METRICS_LIMIT)
    """
    default_limit = current_app.config["RECENT_METRICS_LIMIT"]
    limit = request.args.get("limit", default_limit, type=int)
    if limit is None or limit < 1:
        return jsonify({"error": "limit must be a positive integer"}), 400

    metrics = repository.recent_metrics(limit)
    return jsonify({
        "metrics": [metric.to_dict() for metric in metrics],
        "count": len(metrics)
    }), 200


# Sweep ----------------------------------------------------------------------

@api_bp.route("/sweep", methods=["GET"])
def get_sweep() -> tuple[Response, int]:
    """Current sweep status and the report of the latest sweep."""
    controller = get_sweep_controller()
    report = controller.last_report
    return jsonify({
        "status": controller.status.value,
        "last_report": report.to_dict() if report is not None else None
    }), 200


@api_bp.route("/sweep", methods=["POST"])
def run_sweep() -> tuple[Response, int]:
    """
    Check every website one after the other.

    The request returns when the sweep is complete. A second request
    made while a sweep is running is rejected with 409.

    Each website takes up to two PageSpeed calls plus the configured
    delay, so with many websites the request can outlast the WSGI
    worker timeout. Scheduled or large sweeps should use
    ``flask check-websites`` instead.
    """
    logger.info("POST /api/sweep - Starting sweep")

    controller = get_sweep_controller()
    if controller.is_running:
        return jsonify({"error": "A performance sweep is already running"}), 409

    websites = repository.list_websites()
    try:
        report = controller.run(websites)
    except ConcurrentSweepRejected as exc:
        return jsonify({"error": str(exc)}), 409

    return jsonify(report.to_dict()), 200


# -----------------------------------------------------------------------------
# Error Handlers
# -----------------------------------------------------------------------------

@api_bp.errorhandler(PersistenceFailure)
def persistence_failure(error: PersistenceFailure) -> tuple[Response, int]:
    """Surface database failures as 503 with a readable message."""
    logger.error(f"Persistence failure: {error}")
    return jsonify({"error": str(error)}), 503


@api_bp.errorhandler(400)
def bad_request(error: Exception) -> tuple[Response, int]:
    """Handle 400 Bad Request errors."""
    return jsonify({"error": "Bad request"}), 400


@api_bp.errorhandler(404)
def not_found(error: Exception) -> tuple[Response, int]:
    """Handle 404 Not Found errors."""
    return jsonify({"error": "Resource not found"}), 404


@api_bp.errorhandler(500)
def internal_error(error: Exception) -> tuple[Response, int]:
    """Handle 500 Internal Server errors."""
    logger.error(f"Internal server error: {error}")
    return jsonify({"error": "Internal server error"}), 500
