"""
Integration tests for the JSON API.
"""

import io
import re

import pytest
from PIL import Image

POSTCARD_SELECTION = {'productType': 'postcard', 'orientation': 'portrait', 'size': '4x6'}


def _text(x, y):
    return {'id': 't1', 'text': 'Hi', 'x': x, 'y': y, 'fontSize': 40,
            'fontFamily': 'DejaVuSans', 'fill': '#000000'}


class TestCatalogEndpoints:
    """Test the product catalog endpoints."""

    def test_health(self, client):
        """Test the health check."""
        response = client.get('/api/health')

        assert response.status_code == 200
        assert response.get_json() == {'status': 'ok', 'provider': 'mock'}

    def test_products(self, client):
        """Test listing product types."""
        data = client.get('/api/products').get_json()

        ids = [p['id'] for p in data['productTypes']]
        assert 'postcard' in ids
        assert 'greeting-card' in ids

    def test_options_for_partial_selection(self, client):
        """Test loading options for a partial selection."""
        data = client.get('/api/products/postcard/options?orientation=portrait').get_json()

        assert data['selection']['productType'] == 'postcard'
        assert data['sizes']
        assert data['validation']['valid'] is False

    def test_price(self, client):
        """Test quoting a price."""
        response = client.post('/api/price', json={'selection': {'productType': 'postcard', 'size': '4x6'}})

        assert response.get_json() == {'price': 2.49}

    def test_validate(self, client):
        """Test validating a complete selection."""
        data = client.post('/api/validate', json={'selection': POSTCARD_SELECTION}).get_json()

        assert data['valid'] is True


class TestPrintSpecEndpoint:
    """Test print spec generation over HTTP."""

    def test_generates_spec(self, client):
        """Test generating a postcard print spec."""
        response = client.post('/api/print-spec', json={'selection': POSTCARD_SELECTION})

        assert response.status_code == 200
        assert [s['id'] for s in response.get_json()['sides']] == ['front', 'back']

    def test_incomplete_selection(self, client):
        """Test that an incomplete selection returns 400."""
        response = client.post('/api/print-spec', json={'selection': {'productType': 'postcard'}})

        assert response.status_code == 400
        data = response.get_json()
        assert data['error_type'] == 'SelectionError'
        assert 'Size is required' in data['details']['errors']

    def test_unknown_size(self, client):
        """Test that an unknown size returns 404."""
        selection = {**POSTCARD_SELECTION, 'size': '9x9'}

        response = client.post('/api/print-spec', json={'selection': selection})

        assert response.status_code == 404
        assert response.get_json()['error_type'] == 'SizeNotFoundError'


class TestLayoutEndpoints:
    """Test the layout and border catalog endpoints."""

    def test_list(self, client):
        """Test listing layouts."""
        ids = [l['id'] for l in client.get('/api/layouts').get_json()['layouts']]

        assert 'single' in ids
        assert 'circle-trio' in ids

    def test_alias(self, client):
        """Test looking up a layout by a legacy id."""
        data = client.get('/api/layouts/four-grid').get_json()

        assert data['id'] == 'grid-2x2'
        assert data['requestedId'] == 'four-grid'
        assert data['fallback'] is False

    def test_unknown_falls_back(self, client):
        """Test that an unknown layout falls back to single."""
        data = client.get('/api/layouts/nope').get_json()

        assert data['id'] == 'single'
        assert data['fallback'] is True

    def test_resolved_slots(self, client):
        """Test resolving slots for a given canvas size."""
        data = client.get('/api/layouts/two-up?width=1000&height=500').get_json()

        left, right = data['resolvedSlots']
        assert left['x'] == pytest.approx(0)
        assert left['width'] == pytest.approx(490)
        assert right['x'] == pytest.approx(510)

    def test_borders_by_category(self, client):
        """Test filtering borders by category."""
        data = client.get('/api/borders?category=floral').get_json()

        assert {b['category'] for b in data['borders']} == {'floral'}
        assert len(data['borders']) == 3
        assert 'floral' in [c['id'] for c in data['categories']]


class TestPreflightAndExport:
    """Test preflight and export over HTTP."""

    def test_preflight_flags_text_outside_safe_area(self, client):
        """Test that preflight rejects text outside the safe area."""
        payload = {'selection': POSTCARD_SELECTION, 'sideId': 'front',
                   'design': {'texts': [_text(0, 0)]}}

        data = client.post('/api/preflight', json=payload).get_json()

        assert data['sideId'] == 'front'
        assert data['valid'] is False

    def test_preflight_clean_design(self, client):
        """Test preflight on an empty design."""
        payload = {'selection': POSTCARD_SELECTION, 'design': {}}

        data = client.post('/api/preflight', json=payload).get_json()

        assert data['valid'] is True

    def test_export_png(self, client):
        """Test exporting a side as PNG."""
        payload = {'selection': POSTCARD_SELECTION, 'sideId': 'back',
                   'design': {'background': '#00ff00'}, 'pixelRatio': 0.25}

        response = client.post('/api/export', json=payload)

        assert response.status_code == 200
        assert response.mimetype == 'image/png'
        image = Image.open(io.BytesIO(response.data))
        assert image.getpixel((10, 10))[:3] == (0, 255, 0)

    def test_export_rejects_pixel_ratio(self, client):
        """Test that an oversized pixel ratio returns 500."""
        payload = {'selection': POSTCARD_SELECTION, 'design': {}, 'pixelRatio': 10}

        response = client.post('/api/export', json=payload)

        assert response.status_code == 500
        assert response.get_json()['error_type'] == 'RenderError'

    def test_export_unknown_side(self, client):
        """Test that exporting an unknown side lists the valid sides."""
        payload = {'selection': POSTCARD_SELECTION, 'sideId': 'inside-left', 'design': {}}

        response = client.post('/api/export', json=payload)

        assert response.status_code == 400
        assert response.get_json()['details']['sides'] == ['front', 'back']

    def test_export_pdf(self, client):
        """Test exporting every postcard side as one PDF attachment."""
        payload = {'selection': POSTCARD_SELECTION, 'pixelRatio': 0.1, 'includeBleed': False,
                   'sideStates': {'back': {'background': '#00ff00'}}}

        response = client.post('/api/export/pdf', json=payload)

        assert response.status_code == 200
        assert response.mimetype == 'application/pdf'
        assert 'attachment' in response.headers['Content-Disposition']
        assert len(re.findall(rb'/Type\s*/Page(?!s)', response.data)) == 2

    def test_export_pdf_malformed_states(self, client):
        """Test that malformed side states are rejected."""
        payload = {'selection': POSTCARD_SELECTION, 'sideStates': {'front': {'texts': [{'id': 't1'}]}}}

        response = client.post('/api/export/pdf', json=payload)

        assert response.status_code == 400
        assert response.get_json()['error_type'] == 'InvalidOperationError'

    def test_malformed_design(self, client):
        """Test that a malformed design returns 400."""
        payload = {'selection': POSTCARD_SELECTION, 'design': {'texts': [{'id': 't1'}]}}

        response = client.post('/api/preflight', json=payload)

        assert response.status_code == 400
        assert response.get_json()['error_type'] == 'InvalidOperationError'


class TestDraftEndpoints:
    """Test draft persistence over HTTP."""

    def test_round_trip(self, client):
        """Test saving and loading a draft."""
        draft = {
            'selection': POSTCARD_SELECTION,
            'activeSideId': 'front',
            'design': {'front': {'texts': [_text(200, 200)], 'layoutId': 'two-up'}},
        }

        saved = client.put('/api/drafts/session-1', json=draft)
        loaded = client.get('/api/drafts/session-1')

        assert saved.status_code == 200
        assert saved.get_json()['assetsPartial'] is False
        data = loaded.get_json()
        assert data['activeSideId'] == 'front'
        assert data['design']['front']['layoutId'] == 'two-up'
        assert data['design']['front']['texts'][0]['text'] == 'Hi'

    def test_delete(self, client):
        """Test deleting a draft."""
        client.put('/api/drafts/session-2', json={'selection': POSTCARD_SELECTION, 'design': {}})

        assert client.delete('/api/drafts/session-2').get_json() == {'deleted': True}
        assert client.delete('/api/drafts/session-2').get_json() == {'deleted': False}
        assert client.get('/api/drafts/session-2').status_code == 404

    def test_malformed_draft(self, client):
        """Test that a malformed draft returns 400."""
        payload = {'selection': POSTCARD_SELECTION,
                   'persistedAssets': [{'name': 'no id'}]}

        response = client.put('/api/drafts/session-3', json=payload)

        assert response.status_code == 400
        assert response.get_json()['error_type'] == 'DraftError'
