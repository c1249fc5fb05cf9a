"""Pytest fixtures for leadstages tests."""
import uuid

import pytest

from leadstages.access import Principal
from leadstages.models import Lead, Stage, ensure_default_stages


def _session_client(client, user_id, role):
    session = client.session
    session['local_user_id'] = str(user_id)
    session['user_role'] = role
    session.save()
    return client


@pytest.fixture
def admin_id():
    return uuid.uuid4()


@pytest.fixture
def developer_id():
    return uuid.uuid4()


@pytest.fixture
def admin_principal(admin_id):
    return Principal(user_id=admin_id, role='admin')


@pytest.fixture
def developer_principal(developer_id):
    return Principal(user_id=developer_id, role='developer')


@pytest.fixture
def auth_client(db, client, admin_id):
    """Client logged in with the admin role."""
    return _session_client(client, admin_id, 'admin')


@pytest.fixture
def developer_client(db, client, developer_id):
    """Client logged in with a restricted role."""
    return _session_client(client, developer_id, 'developer')


@pytest.fixture
def make_stage(db):
    """Create a stage with an explicit order key."""
    def factory(name, order, **kwargs):
        kwargs.setdefault('key', name.lower().replace(' ', '_').replace('.', '_'))
        return Stage.objects.create(name=name, order=order, **kwargs)
    return factory


@pytest.fixture
def make_lead(db, admin_id):
    def factory(stage, client_name='Acme', **kwargs):
        kwargs.setdefault('job_description', 'Backend developer')
        kwargs.setdefault('created_by', admin_id)
        return Lead.objects.create(stage=stage, client_name=client_name, **kwargs)
    return factory


@pytest.fixture
def legacy_stages(db):
    """The four stages of the fixed status pipeline, keyed by stage key."""
    return {stage.key: stage for stage in ensure_default_stages()}


@pytest.fixture
def stage_a(make_stage):
    return make_stage('A', 1)


@pytest.fixture
def stage_b(make_stage):
    return make_stage('B', 2)
