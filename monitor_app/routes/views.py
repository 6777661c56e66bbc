"""
HTML view routes for the Site Monitor web interface.

This module provides routes that render HTML templates for the
web-based user interface. These routes work alongside the API
to provide a complete user experience.

Routes:
    GET  /                          - Website list with filters (home)
    GET  /websites/new              - New website form
    POST /websites                  - Create website
    GET  /websites/<id>             - Website detail with metric history
    POST /websites/<id>/delete      - Delete website
    POST /websites/check            - Check performance for all websites
    GET  /customers                 - Customer list
    GET  /customers/new             - New customer form
    POST /customers                 - Create customer
    GET  /customers/<id>/edit       - Edit customer form
    POST /customers/<id>/update     - Update customer
    POST /customers/<id>/delete     - Delete customer
"""

import logging

from flask import Blueprint, abort, flash, redirect, render_template, request, url_for

from monitor_app import db, get_sweep_controller, repository
from monitor_app.errors import ConcurrentSweepRejected, PersistenceFailure
from monitor_app.filtering import ALL, check_state, filter_websites
from monitor_app.models import Customer, Website
from monitor_app.routes.api import (
    CUSTOMER_TEXT_FIELDS,
    SPEED_FILTERS,
    STATUS_FILTERS,
    is_valid_url,
    parse_datetime,
    validate_customer_data,
)
from monitor_app.thresholds import SiteStatus, SpeedTier, describe_metric

logger = logging.getLogger(__name__)

views_bp = Blueprint("views", __name__)


def get_or_404(model, object_id: int):
    """Fetch a row by ID or raise 404."""
    instance = db.session.get(model, object_id)
    if not instance:
        abort(404)
    return instance


def customer_form_data() -> dict:
    """Collect customer fields from the submitted form, blanks as None."""
    data = {}
    for field in CUSTOMER_TEXT_FIELDS:
        value = request.form.get(field, "").strip()
        data[field] = value or None
    data["last_contacted_at"] = request.form.get("last_contacted_at", "").strip() or None
    return data


# -----------------------------------------------------------------------------
# Websites
# -----------------------------------------------------------------------------

@views_bp.route("/")
def index():
    """
    Render the website list page.

    Query Parameters:
        status: all, good, poor, very_poor
        speed: all, fast, medium, slow

    Returns:
        Rendered index template with matching websites and, separately,
        websites that have no displayable metrics yet.
    """
    logger.info("GET / - Rendering website list")

    status_filter = request.args.get("status", ALL)
    speed_filter = request.args.get("speed", ALL)
    if status_filter not in STATUS_FILTERS:
        status_filter = ALL
    if speed_filter not in SPEED_FILTERS:
        speed_filter = ALL

    controller = get_sweep_controller()
    websites = repository.list_websites()
    index = controller.latest_metrics()
    shown = filter_websites(websites, index, status_filter, speed_filter)

    cards = [
        {
            "website": website,
            "metric": index.get(website.id),
            "summary": describe_metric(index.get(website.id)),
            "state": check_state(website.id, index, controller.last_outcomes).value,
        }
        for website in shown
    ]
    pending = [
        {
            "website": website,
            "state": check_state(website.id, index, controller.last_outcomes).value,
            "outcome": controller.last_outcomes.get(website.id),
        }
        for website in websites
        if website.id not in index
    ]

    return render_template(
        "websites/index.html",
        cards=cards,
        pending=pending,
        statuses=SiteStatus,
        speeds=SpeedTier,
        current_status=status_filter,
        current_speed=speed_filter,
        is_checking=controller.is_running
    )


@views_bp.route("/websites/new")
def new_website():
    """Render the new website form."""
    logger.info("GET /websites/new - Rendering new website form")

    return render_template(
        "websites/form.html",
        customers=repository.list_customers(),
        form_action=url_for("views.create_website")
    )


@views_bp.route("/websites", methods=["POST"])
def create_website():
    """
    Handle new website form submission.

    Form Data:
        name: Website name (required)
        url: Absolute http(s) URL (required)
        customer_id: Owning customer (optional)

    Returns:
        Redirect to index on success, or back to form on error.
    """
    logger.info("POST /websites - Creating website from form")

    name = request.form.get("name", "").strip()
    url = request.form.get("url", "").strip()
    customer_id = request.form.get("customer_id", type=int)

    if not name:
        flash("Name is required", "error")
        return redirect(url_for("views.new_website"))

    if len(name) > 200:
        flash("Name must be 200 characters or less", "error")
        return redirect(url_for("views.new_website"))

    if not is_valid_url(url):
        flash("Please enter a valid URL including http:// or https://", "error")
        return redirect(url_for("views.new_website"))

    if customer_id is not None and db.session.get(Customer, customer_id) is None:
        flash("Selected customer does not exist", "error")
        return redirect(url_for("views.new_website"))

    website = Website(name=name, url=url, customer_id=customer_id)
    repository.save_website(website)

    flash("Website added successfully", "success")
    logger.info(f"Created website {website.id} from form")

    return redirect(url_for("views.index"))


@views_bp.route("/websites/<int:website_id>")
def view_website(website_id: int):
    """Render one website with its metric history, newest first."""
    logger.info(f"GET /websites/{website_id} - Viewing website")

    website = get_or_404(Website, website_id)
    history = repository.metric_history(website_id)
    latest = history[0] if history else None
    controller = get_sweep_controller()

    return render_template(
        "websites/detail.html",
        website=website,
        history=history,
        latest=latest,
        summary=describe_metric(latest) if latest else None,
        outcome=controller.last_outcomes.get(website_id)
    )


@views_bp.route("/websites/<int:website_id>/delete", methods=["POST"])
def delete_website(website_id: int):
    """Handle website deletion."""
    logger.info(f"POST /websites/{website_id}/delete - Deleting website")

    website = get_or_404(Website, website_id)
    repository.delete_website(website)
    get_sweep_controller().forget(website_id)

    flash("Website deleted successfully", "success")
    logger.info(f"Deleted website {website_id}")

    return redirect(url_for("views.index"))


@views_bp.route("/websites/check", methods=["POST"])
def check_all_websites():
    """
    Run a performance sweep over every website.

    The sweep runs inside this request, one website after the other.
    With many websites it can outlast the WSGI worker timeout; use
    ``flask check-websites`` for those.

    Returns:
        Redirect back to the index with a summary flash message.
    """
    logger.info("POST /websites/check - Checking all websites")

    try:
        report = get_sweep_controller().run(repository.list_websites())
    except ConcurrentSweepRejected:
        flash("A performance check is already running", "error")
        return redirect(url_for("views.index"))

    if report.failed:
        names = ", ".join(outcome.website_name for outcome in report.failed)
        flash(f"Checked {len(report.succeeded)} websites; failed: {names}", "error")
    else:
        flash(f"Checked {len(report.succeeded)} websites", "success")

    return redirect(url_for("views.index"))


# -----------------------------------------------------------------------------
# Customers
# -----------------------------------------------------------------------------

@views_bp.route("/customers")
def customers():
    """Render the customer list ordered by name."""
    logger.info("GET /customers - Rendering customer list")

    return render_template("customers/index.html", customers=repository.list_customers())


@views_bp.route("/customers/new")
def new_customer():
    """Render the new customer form."""
    return render_template(
        "customers/form.html",
        customer=None,
        form_action=url_for("views.create_customer"),
        form_title="Add Customer"
    )


@views_bp.route("/customers", methods=["POST"])
def create_customer():
    """Handle new customer form submission."""
    logger.info("POST /customers - Creating customer from form")

    data = customer_form_data()
    is_valid, error = validate_customer_data(data, required_fields=["name", "email"])
    if not is_valid:
        flash(error, "error")
        return redirect(url_for("views.new_customer"))

    customer = Customer(
        **{field: data[field] for field in CUSTOMER_TEXT_FIELDS if field != "country"},
        country=data["country"] or "",
        last_contacted_at=parse_datetime(data["last_contacted_at"])
    )
    repository.save_customer(customer)

    flash("Customer created successfully", "success")
    logger.info(f"Created customer {customer.id} from form")

    return redirect(url_for("views.customers"))


@views_bp.route("/customers/<int:customer_id>/edit")
def edit_customer(customer_id: int):
    """Render the edit customer form."""
    customer = get_or_404(Customer, customer_id)

    return render_template(
        "customers/form.html",
        customer=customer,
        form_action=url_for("views.update_customer", customer_id=customer_id),
        form_title="Edit Customer"
    )


@views_bp.route("/customers/<int:customer_id>/update", methods=["POST"])
def update_customer(customer_id: int):
    """Handle edit customer form submission."""
    logger.info(f"POST /customers/{customer_id}/update - Updating customer from form")

    customer = get_or_404(Customer, customer_id)

    data = customer_form_data()
    is_valid, error = validate_customer_data(data, required_fields=["name", "email"])
    if not is_valid:
        flash(error, "error")
        return redirect(url_for("views.edit_customer", customer_id=customer_id))

    for field in CUSTOMER_TEXT_FIELDS:
        setattr(customer, field, data[field])
    customer.country = data["country"] or ""
    customer.last_contacted_at = parse_datetime(data["last_contacted_at"])
    repository.save_customer(customer)

    flash("Customer updated successfully", "success")
    logger.info(f"Updated customer {customer_id} from form")

    return redirect(url_for("views.customers"))


@views_bp.route("/customers/<int:customer_id>/delete", methods=["POST"])
def delete_customer(customer_id: int):
    """Handle customer deletion; the customer's websites are kept."""
    logger.info(f"POST /customers/{customer_id}/delete - Deleting customer")

    customer = get_or_404(Customer, customer_id)
    repository.delete_customer(customer)

    flash("Customer deleted successfully", "success")
    return redirect(url_for("views.customers"))


@views_bp.errorhandler(PersistenceFailure)
def persistence_failure(error: PersistenceFailure):
    """Show database failures as a visible error page."""
    logger.error(f"Persistence failure: {error}")
    return render_template("error.html", message=str(error)), 503
