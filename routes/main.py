"""
routes/main.py - Dashboard and dashboard JSON API.

Provides:
- GET /                - Dashboard: summary cards, centralized to-do list,
                         current-month production per garden, garden quick access
- GET /api/todos       - To-do list grouped by date bucket (JSON)
- GET /api/todos/count - Number of pending to-do items (JSON)
"""

from datetime import date

from flask import Blueprint, render_template, jsonify, current_app

from calculations import garden_overview, monthly_production_by_garden
from database import get_store
from models import Garden, Harvest
from todo_aggregator import BUCKETS, get_all_todos, group_todos_by_date

main_bp = Blueprint('main', __name__)


def _workers():
    return current_app.config['TODO_FETCH_WORKERS']


@main_bp.route('/')
def index():
    """Dashboard: overview of every garden."""
    store = get_store()
    today = date.today()

    gardens, error = store.list_all(Garden)
    if error:
        gardens = []
    harvests, harvest_error = store.list_all(Harvest)
    if harvest_error:
        harvests = []

    todos = get_all_todos(store, _workers())
    grouped = group_todos_by_date(todos, today)

    production = monthly_production_by_garden(gardens, harvests, today.year, today.month)

    return render_template(
        'index.html',
        overview=garden_overview(gardens),
        todos=todos,
        grouped_todos=grouped,
        buckets=BUCKETS,
        production=production,
        total_production=sum(p['value'] for p in production),
        quick_gardens=gardens[:6],
        load_error=error or harvest_error,
        today=today,
    )


@main_bp.route('/api/todos')
def api_todos():
    """JSON API - pending maintenances and open issues grouped by date."""
    grouped = group_todos_by_date(get_all_todos(get_store(), _workers()))
    payload = {bucket: [t.to_dict() for t in items] for bucket, items in grouped.items()}
    payload['count'] = sum(len(items) for items in grouped.values())
    return jsonify(payload)


@main_bp.route('/api/todos/count')
def api_todos_count():
    todos = get_all_todos(get_store(), _workers())
    return jsonify({'count': len(todos)})
