from fastapi.testclient import TestClient

from hazard_hub.config.mock_firestore import MockFirestore
from hazard_hub.core.container import build_services
from hazard_hub.core.settings import Settings
from hazard_hub.main import create_app

settings = Settings(USE_MOCK_DB=True)
app = create_app(build_services(settings, db=MockFirestore()))
client = TestClient(app)

print('ROOT:')
print(client.get('/').json())

print('\nHEALTH:')
print(client.get('/health').json())

print('\nDB HEALTH:')
resp = client.get('/health/db')
print(resp.status_code)
print(resp.json())

print('\nANONYMOUS REPORT:')
resp = client.post('/reports', json={
    'description': 'Fallen power line across the road',
    'urgency': 'High',
    'latitude': 12.97,
    'longitude': 77.59,
})
print(resp.status_code, resp.json().get('report_id'))

print('\nLIST WITHOUT TOKEN (expect 401):')
resp = client.get('/reports')
print(resp.status_code, resp.json())
