"""
Flask routes for the print-space layout engine
JSON API over the provider, layout and border catalogs, preflight, export and drafts
"""

from flask import Blueprint, request, current_app, jsonify, send_file
from loguru import logger
import io

from .borders import ALL_BORDER_DESIGNS, BORDER_CATEGORIES, get_borders_by_category
from .errors import (
    PrintSpaceError, SelectionError, SpecGenerationError, SizeNotFoundError,
    EditorError, ItemNotFoundError, InvalidOperationError, RenderError, ConfigurationError, DraftError
)
from .export import to_png_bytes
from .fitting import Rect
from .layouts import all_layouts, catalog_for, get_layout, canonical_id, resolve_slots
from .drafts import Draft
from .models import DesignState, Selection, PlacementDesign
from .preflight import run_preflight


bp = Blueprint('printspace', __name__, url_prefix='/api')


def _services():
    return current_app.extensions['printspace']


def _catalog():
    return catalog_for(_services()['config'])


def _payload() -> dict:
    return request.get_json(silent=True) or {}


def _parse_design(data) -> PlacementDesign:
    try:
        return PlacementDesign.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise InvalidOperationError(
            f"Malformed design payload: {e}",
            suggestions=["Send the design as produced by PlacementDesign.to_dict()"]
        ) from e


def _resolve_side(payload: dict):
    """Print spec side named by ``sideId`` for the payload's selection."""
    provider = _services()['provider']
    spec = provider.generate_print_spec(Selection.from_dict(payload.get('selection')))
    side_id = payload.get('sideId') or spec.sides[0].id
    try:
        return spec.side(side_id)
    except KeyError:
        raise EditorError(
            f"Side {side_id} does not exist for {spec.id}",
            details={'side_id': side_id, 'sides': spec.side_ids}
        )


@bp.errorhandler(PrintSpaceError)
def handle_engine_error(e: PrintSpaceError):
    """Map engine errors to JSON responses"""
    if isinstance(e, (SizeNotFoundError, ItemNotFoundError)):
        status = 404
    elif isinstance(e, (SelectionError, SpecGenerationError, EditorError, DraftError)):
        status = 400
    elif isinstance(e, (RenderError, ConfigurationError)):
        status = 500
    else:
        status = 400

    if status >= 500:
        logger.error(f"{request.path} failed: {e}")
    else:
        logger.warning(f"{request.path} rejected: {e}")
    return jsonify(e.to_dict()), status


@bp.route('/health', methods=['GET'])
def health():
    provider = _services()['provider']
    return jsonify({'status': 'ok', 'provider': provider.type})


@bp.route('/products', methods=['GET'])
def products():
    provider = _services()['provider']
    return jsonify({'productTypes': [o.to_dict() for o in provider.get_product_types()]})


@bp.route('/products/<product_type>/options', methods=['GET'])
def product_options(product_type):
    """All option lists for a partial selection given as query parameters"""
    selection = Selection.from_dict({**request.args.to_dict(), 'productType': product_type})
    snapshot = _services()['options'].load(selection)
    return jsonify(snapshot.to_dict())


@bp.route('/price', methods=['POST'])
def price():
    provider = _services()['provider']
    selection = Selection.from_dict(_payload().get('selection', _payload()))
    return jsonify({'price': provider.get_price(selection)})


@bp.route('/validate', methods=['POST'])
def validate():
    provider = _services()['provider']
    selection = Selection.from_dict(_payload().get('selection', _payload()))
    return jsonify(provider.validate_selection(selection).to_dict())


@bp.route('/print-spec', methods=['POST'])
def print_spec():
    provider = _services()['provider']
    selection = Selection.from_dict(_payload().get('selection', _payload()))
    spec = provider.generate_print_spec(selection)
    return jsonify(spec.to_dict())


@bp.route('/layouts', methods=['GET'])
def layouts():
    return jsonify({'layouts': [layout.to_dict() for layout in all_layouts(_catalog())]})


@bp.route('/layouts/<layout_id>', methods=['GET'])
def layout_detail(layout_id):
    """One layout; with ``width`` and ``height`` query args its slots are resolved to pixels"""
    layout = get_layout(layout_id, _catalog())
    data = layout.to_dict()
    data['requestedId'] = layout_id
    data['fallback'] = layout.id != canonical_id(layout_id)

    width = request.args.get('width', type=float)
    height = request.args.get('height', type=float)
    if width and height:
        data['resolvedSlots'] = [r.to_dict() for r in resolve_slots(layout, Rect(0, 0, width, height))]
    return jsonify(data)


@bp.route('/borders', methods=['GET'])
def borders():
    category = request.args.get('category')
    designs = get_borders_by_category(category) if category else ALL_BORDER_DESIGNS
    return jsonify({
        'categories': BORDER_CATEGORIES,
        'borders': [b.to_dict() for b in designs],
    })


@bp.route('/preflight', methods=['POST'])
def preflight():
    payload = _payload()
    side = _resolve_side(payload)
    design = _parse_design(payload.get('design'))
    result = run_preflight(design, side, payload.get('cornerRadiusMm', 0),
                           config=_services()['config'])
    return jsonify(result.to_dict())


@bp.route('/export', methods=['POST'])
def export():
    """Render one placement and return it as a PNG"""
    payload = _payload()
    side = _resolve_side(payload)
    design = _parse_design(payload.get('design'))
    pipeline = _services()['pipeline']

    result = pipeline.render_placement(
        design, side,
        border=payload.get('border'),
        foil=payload.get('foil'),
        pixel_ratio=float(payload.get('pixelRatio', 1.0)),
    )
    logger.info(f"Exported {side.id} at {result.size[0]}x{result.size[1]}")
    return send_file(
        io.BytesIO(to_png_bytes(result.image, result.dpi)),
        mimetype='image/png',
        download_name=f"{side.id}.png"
    )


@bp.route('/export/pdf', methods=['POST'])
def export_pdf():
    """Render every side of the selection's print spec into one PDF"""
    payload = _payload()
    provider = _services()['provider']
    spec = provider.generate_print_spec(Selection.from_dict(payload.get('selection')))
    try:
        state = DesignState.from_dict(payload.get('sideStates'))
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise InvalidOperationError(
            f"Malformed side states: {e}",
            suggestions=["Send sideStates as produced by DesignState.to_dict()"]
        ) from e

    pdf = _services()['pipeline'].export_pdf(
        spec, state,
        include_bleed=bool(payload.get('includeBleed', True)),
        border=payload.get('border'),
        foil=payload.get('foil'),
        pixel_ratio=float(payload.get('pixelRatio', 1.0)),
    )
    return send_file(
        io.BytesIO(pdf),
        mimetype='application/pdf',
        as_attachment=True,
        download_name=f"{spec.id}.pdf"
    )


@bp.route('/drafts/<key>', methods=['PUT'])
def save_draft(key):
    try:
        draft = Draft.from_dict(_payload())
    except (KeyError, TypeError, ValueError) as e:
        raise DraftError(f"Malformed draft payload: {e}", details={'key': key}) from e
    stored = _services()['drafts'].save(key, draft)
    return jsonify({'key': key, 'assetsPartial': stored.assets_partial, 'updatedAt': stored.updated_at})


@bp.route('/drafts/<key>', methods=['GET'])
def load_draft(key):
    draft = _services()['drafts'].load(key)
    if draft is None:
        return jsonify({'error_type': 'NotFound', 'message': f"No draft stored under {key}"}), 404
    return jsonify(draft.to_dict())


@bp.route('/drafts/<key>', methods=['DELETE'])
def delete_draft(key):
    return jsonify({'deleted': _services()['drafts'].delete(key)})
