"""Tests for leadstages views."""
import json
import uuid

import pytest
from django.urls import reverse

from leadstages.models import Lead, Stage


def _json(client, method, url, payload):
    return getattr(client, method)(url, data=json.dumps(payload), content_type='application/json')


@pytest.mark.django_db
class TestAuth:
    """Session and role checks."""

    def test_requires_session(self, client):
        """Test requires session."""
        response = client.get(reverse('leadstages:stages'))
        assert response.status_code == 401
        assert response.json()['code'] == 'unauthorized'

    def test_restricted_role_cannot_create(self, developer_client):
        """Test restricted role cannot create."""
        response = _json(developer_client, 'post', reverse('leadstages:stages'), {'name': 'X'})
        assert response.status_code == 403
        assert response.json() == {
            'success': False, 'error': 'Only stage administrators can change stages',
            'code': 'forbidden',
        }
        assert not Stage.objects.exists()

    def test_restricted_role_can_read(self, developer_client, stage_a):
        """Test restricted role can read."""
        response = developer_client.get(reverse('leadstages:stages'))
        assert response.status_code == 200

    def test_method_not_allowed(self, auth_client):
        """Test method not allowed."""
        response = auth_client.put(reverse('leadstages:stages'))
        assert response.status_code == 405


@pytest.mark.django_db
class TestStageViews:
    """Stage endpoint tests."""

    def test_list(self, auth_client, stage_a, make_stage):
        """Test stage list hides inactive stages."""
        make_stage('Hidden', 2, active=False)
        response = auth_client.get(reverse('leadstages:stages'))
        body = response.json()
        assert body['success'] is True
        assert [s['name'] for s in body['data']] == ['A']

    def test_list_include_inactive(self, auth_client, stage_a, make_stage):
        """Test list include inactive."""
        make_stage('Hidden', 2, active=False)
        response = auth_client.get(reverse('leadstages:stages'), {'includeInactive': 'true'})
        assert [s['name'] for s in response.json()['data']] == ['A', 'Hidden']

    def test_create(self, auth_client, admin_id):
        """Test stage creation."""
        response = _json(auth_client, 'post', reverse('leadstages:stages'), {
            'name': 'Offer Sent', 'color': '#10B981', 'isDefault': True,
        })
        assert response.status_code == 201
        data = response.json()['data']
        assert data['key'] == 'offer_sent'
        assert data['isDefault'] is True
        assert Stage.objects.get(pk=data['id']).created_by == admin_id

    def test_create_invalid(self, auth_client):
        """Test create invalid."""
        response = _json(auth_client, 'post', reverse('leadstages:stages'), {'color': '#fff'})
        assert response.status_code == 400
        body = response.json()
        assert body['code'] == 'validation_error'
        assert 'name' in body['errors']

    def test_create_bad_json(self, auth_client):
        """Test malformed JSON body."""
        response = auth_client.post(
            reverse('leadstages:stages'), data='{nope', content_type='application/json',
        )
        assert response.status_code == 400

    def test_create_adjacent(self, auth_client, stage_a, stage_b):
        """Test create adjacent."""
        response = _json(auth_client, 'post', reverse('leadstages:stage_adjacent'), {
            'pivotId': str(stage_a.pk), 'where': 'after', 'name': 'A.5',
        })
        assert response.status_code == 201
        assert response.json()['data']['order'] == 1.5
        assert list(Stage.objects.values_list('name', flat=True)) == ['A', 'A.5', 'B']

    def test_create_adjacent_bad_position(self, auth_client, stage_a):
        """Test create adjacent bad position."""
        response = _json(auth_client, 'post', reverse('leadstages:stage_adjacent'), {
            'pivotId': str(stage_a.pk), 'where': 'inside', 'name': 'X',
        })
        assert response.status_code == 400

    def test_create_adjacent_unknown_pivot(self, auth_client, stage_a):
        """Test create adjacent unknown pivot."""
        response = _json(auth_client, 'post', reverse('leadstages:stage_adjacent'), {
            'pivotId': str(uuid.uuid4()), 'where': 'before', 'name': 'X',
        })
        assert response.status_code == 404
        assert response.json()['code'] == 'not_found'

    def test_detail(self, auth_client, stage_a):
        """Test stage detail."""
        response = auth_client.get(reverse('leadstages:stage_detail', args=[stage_a.pk]))
        assert response.json()['data']['key'] == 'a'

    def test_detail_missing(self, auth_client):
        """Test detail missing."""
        response = auth_client.get(reverse('leadstages:stage_detail', args=[uuid.uuid4()]))
        assert response.status_code == 404

    def test_update(self, auth_client, stage_a):
        """Test partial stage update."""
        url = reverse('leadstages:stage_detail', args=[stage_a.pk])
        response = _json(auth_client, 'patch', url, {'name': 'Applied', 'active': False})
        assert response.status_code == 200
        stage_a.refresh_from_db()
        assert (stage_a.name, stage_a.key, stage_a.active) == ('Applied', 'a', False)

    def test_update_rejects_order(self, auth_client, stage_a):
        """Test update rejects order."""
        url = reverse('leadstages:stage_detail', args=[stage_a.pk])
        response = _json(auth_client, 'patch', url, {'order': 5})
        assert response.status_code == 400
        stage_a.refresh_from_db()
        assert stage_a.order == 1.0

    def test_delete_conflict(self, auth_client, stage_a, make_lead):
        """Test delete conflict."""
        make_lead(stage_a)
        response = auth_client.delete(reverse('leadstages:stage_detail', args=[stage_a.pk]))
        assert response.status_code == 409
        body = response.json()
        assert body['code'] == 'conflict'
        assert body['leads'] == 1
        assert Stage.objects.filter(pk=stage_a.pk).exists()

    def test_delete_with_target(self, auth_client, stage_a, stage_b, make_lead):
        """Test delete with target."""
        lead = make_lead(stage_a)
        url = reverse('leadstages:stage_detail', args=[stage_a.pk])
        response = _json(auth_client, 'delete', url, {'targetStageId': str(stage_b.pk)})
        assert response.status_code == 200
        assert response.json()['data'] == {'deleted': True, 'reassigned': 1}
        assert Lead.objects.get(pk=lead.pk).stage == stage_b

    def test_delete_target_in_query_string(self, auth_client, stage_a, stage_b, make_lead):
        """Test delete target in query string."""
        make_lead(stage_a)
        url = reverse('leadstages:stage_detail', args=[stage_a.pk])
        response = auth_client.delete(f'{url}?targetStageId={stage_b.pk}')
        assert response.status_code == 200

    def test_reorder(self, auth_client, stage_a, stage_b):
        """Test stage reorder."""
        response = _json(auth_client, 'patch', reverse('leadstages:stage_reorder'), {
            'orderIds': [str(stage_b.pk), str(stage_a.pk)],
        })
        assert response.status_code == 200
        assert [s['name'] for s in response.json()['data']] == ['B', 'A']

    def test_reorder_not_a_list(self, auth_client, stage_a):
        """Test reorder not a list."""
        response = _json(auth_client, 'patch', reverse('leadstages:stage_reorder'), {
            'orderIds': str(stage_a.pk),
        })
        assert response.status_code == 400


@pytest.mark.django_db
class TestKanbanViews:
    """Kanban endpoint tests."""

    def test_board_seeds_stages(self, auth_client):
        """Test board seeds stages."""
        response = auth_client.get(reverse('leadstages:kanban_board'))
        assert response.status_code == 200
        columns = list(response.json()['data'].values())
        assert [c['stage']['key'] for c in columns] == [
            'new', 'interview_scheduled', 'test_assigned', 'completed',
        ]

    def test_board_column_shape(self, auth_client, stage_a, make_lead):
        """Test board column shape."""
        lead = make_lead(stage_a, client_name='Globex')
        response = auth_client.get(reverse('leadstages:kanban_board'), {'aLimit': '1'})
        column = response.json()['data'][str(stage_a.pk)]
        assert column['stage']['name'] == 'A'
        assert column['data'][0]['id'] == str(lead.pk)
        assert column['data'][0]['clientName'] == 'Globex'
        assert column['pagination']['limit'] == 1

    def test_board_invalid_filter(self, auth_client, stage_a):
        """Test board invalid filter."""
        response = auth_client.get(reverse('leadstages:kanban_board'), {'createdBy': 'x'})
        assert response.status_code == 400

    def test_summary(self, developer_client, developer_id, stage_a, make_lead):
        """Test summary."""
        make_lead(stage_a)
        make_lead(stage_a, created_by=developer_id)
        response = developer_client.get(reverse('leadstages:kanban_summary'))
        data = response.json()['data']
        assert data['total'] == 1
        assert data['stages'][0]['count'] == 1

    def test_move(self, settings, auth_client, stage_a, stage_b, make_lead):
        """Test move."""
        settings.LEADSTAGES = {'TRANSITION_POLICY': 'free'}
        lead = make_lead(stage_a)
        url = reverse('leadstages:lead_move', args=[lead.pk])
        response = _json(auth_client, 'patch', url, {'toStageId': str(stage_b.pk)})
        assert response.status_code == 200
        assert response.json()['data']['status'] == 'b'

    def test_move_invisible_lead(self, developer_client, stage_a, stage_b, make_lead):
        """Test move invisible lead."""
        lead = make_lead(stage_a)
        url = reverse('leadstages:lead_move', args=[lead.pk])
        response = _json(developer_client, 'patch', url, {'toStageId': str(stage_b.pk)})
        assert response.status_code == 404


@pytest.mark.django_db
class TestLeadStatusView:
    """Lead status endpoint tests."""

    def test_legal(self, auth_client, legacy_stages, make_lead):
        """Test legal."""
        lead = make_lead(legacy_stages['new'])
        url = reverse('leadstages:lead_status', args=[lead.pk])
        response = _json(auth_client, 'patch', url, {'status': 'interview_scheduled'})
        assert response.status_code == 200
        assert response.json()['data']['stage'] == str(legacy_stages['interview_scheduled'].pk)

    def test_illegal(self, auth_client, legacy_stages, make_lead):
        """Test illegal."""
        lead = make_lead(legacy_stages['new'])
        url = reverse('leadstages:lead_status', args=[lead.pk])
        response = _json(auth_client, 'patch', url, {'status': 'completed'})
        assert response.status_code == 409
        body = response.json()
        assert body['code'] == 'invalid_transition'
        assert (body['current'], body['attempted']) == ('new', 'completed')

    def test_missing_status(self, auth_client, legacy_stages, make_lead):
        """Test missing status."""
        lead = make_lead(legacy_stages['new'])
        url = reverse('leadstages:lead_status', args=[lead.pk])
        response = _json(auth_client, 'patch', url, {})
        assert response.status_code == 400


@pytest.mark.django_db
class TestAdmin:
    """Admin registration tests."""

    def test_stage_admin_add(self, admin_client, stage_a):
        """Test stage admin add."""
        response = admin_client.post(reverse('admin:leadstages_stage_add'), {
            'name': 'From Admin', 'color': '#000000', 'active': 'on',
        })
        assert response.status_code == 302
        stage = Stage.objects.get(name='From Admin')
        assert stage.key == 'from_admin'
        assert stage.order == 2.0
