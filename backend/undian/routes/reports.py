from flask import Blueprint, Response, jsonify, request, g

from ..decorators import require_session, store_scope
from ..entities import ROLE_ADMIN, ROLE_KASIR
from ..extensions import get_core
from ..services import export_service


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def _export_from_request():
    voucher_type = request.args.get("type")
    # Kasir exports are always confined to their own store
    toko_name = store_scope() or request.args.get("toko_name")
    export = export_service.build_voucher_export(
        get_core().store,
        type=voucher_type,
        toko_name=toko_name,
        session=g.auth_session,
    )
    return export, voucher_type


@reports_bp.get("/stats")
@require_session(ROLE_ADMIN, ROLE_KASIR)
def stats_report():
    toko_name = store_scope() or request.args.get("toko_name")
    return jsonify(get_core().store.get_stats(toko_name=toko_name)), 200


@reports_bp.get("/vouchers")
@require_session(ROLE_ADMIN, ROLE_KASIR)
def voucher_export_report():
    export, _ = _export_from_request()
    return jsonify(export.to_dict()), 200


@reports_bp.get("/vouchers.csv")
@require_session(ROLE_ADMIN, ROLE_KASIR)
def voucher_export_csv():
    export, voucher_type = _export_from_request()
    filename = export_service.export_filename(export, voucher_type)
    return Response(
        export_service.render_csv(export),
        mimetype="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}.csv"'},
    )
