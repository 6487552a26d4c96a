"""JSON API blueprint - sales commit and cost reporting - team scoped."""
from flask import Blueprint, request, jsonify, g
from werkzeug.exceptions import BadRequest

from stockledger.database import get_session
from stockledger.exceptions import InvalidDateRangeError, ValidationError
from stockledger.middleware import require_login, require_team
from stockledger.services.report_service import (
    compute_cogs_for_window, compute_unit_cost, get_window_summary
)
from stockledger.services.sale_delete_service import delete_sale_transaction
from stockledger.services.sales_service import get_sale_transaction, record_sale
from stockledger.utils.dates import parse_iso_datetime, parse_period
from stockledger.utils.money import round_rate

api_bp = Blueprint('api', __name__, url_prefix='/api')


def _json_body() -> dict:
    try:
        data = request.get_json(force=True, silent=False)
    except BadRequest:
        raise ValidationError('Request body must be valid JSON')
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def _window_from_args():
    """Reporting window from ?period=YYYY-MM|YYYY-Qn or ?start=&end= (ISO-8601)."""
    period = request.args.get('period')
    if period:
        return parse_period(period)

    start = request.args.get('start')
    end = request.args.get('end')
    if not start or not end:
        raise InvalidDateRangeError('Provide period, or both start and end')
    return parse_iso_datetime(start), parse_iso_datetime(end, end_of_day=True)


@api_bp.route('/sales', methods=['POST'])
@require_login
@require_team
def create_sale():
    """Commit a multi-line sale."""
    data = _json_body()
    sale = record_sale(
        get_session(),
        g.team_id,
        data.get('lines') or data.get('items') or [],
        customer_name=data.get('customer_name', data.get('customerName')),
        tax=data.get('tax'),
        discount=data.get('discount'),
        user_id=g.user_id,
    )
    return jsonify({'status': 'ok', 'transaction': sale.to_dict()}), 201


@api_bp.route('/sales/<int:transaction_id>', methods=['GET'])
@require_login
@require_team
def get_sale(transaction_id: int):
    sale = get_sale_transaction(get_session(), transaction_id, g.team_id)
    return jsonify({'status': 'ok', 'transaction': sale.to_dict()})


@api_bp.route('/sales/<int:transaction_id>', methods=['DELETE'])
@require_login
@require_team
def delete_sale(transaction_id: int):
    """Delete a sale and its lines. Stock is not restored."""
    result = delete_sale_transaction(get_session(), transaction_id, g.team_id, user_id=g.user_id)
    return jsonify({'status': 'ok', **result})


@api_bp.route('/reports/cogs', methods=['GET'])
@require_login
@require_team
def cogs_report():
    start, end = _window_from_args()
    result = compute_cogs_for_window(get_session(), g.team_id, start, end,
                                     method=request.args.get('method'))
    return jsonify({'status': 'ok', 'start': start.isoformat(), 'end': end.isoformat(), **result.to_dict()})


@api_bp.route('/reports/summary', methods=['GET'])
@require_login
@require_team
def summary_report():
    start, end = _window_from_args()
    summary = get_window_summary(get_session(), g.team_id, start, end,
                                 method=request.args.get('method'))
    return jsonify({'status': 'ok', **summary})


@api_bp.route('/batches/<int:batch_id>/unit-cost', methods=['GET'])
@require_login
@require_team
def batch_unit_cost(batch_id: int):
    """Cost basis preview shown before a sale is recorded."""
    unit_cost = compute_unit_cost(get_session(), batch_id, team_id=g.team_id,
                                  method=request.args.get('method'))
    return jsonify({'status': 'ok', 'batch_id': batch_id, 'unit_cost': round_rate(unit_cost)})
