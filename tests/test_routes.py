import io
import json
import unittest
import zipfile
from unittest import mock

from playbook.main import create_app
from playbook.sharing import ShareLink


def record_payload(name="Cycle Low", category="offensive", effectiveness=80):
    return {
        'id': name.lower().replace(' ', '-'),
        'name': name,
        'category': category,
        'effectiveness': effectiveness,
        'createdAt': '2025-01-15T12:00:00Z',
        'updatedAt': '2025-01-20T12:00:00Z',
        'tags': ['cycle'],
    }


class TestRoutes(unittest.TestCase):
    def setUp(self):
        self.sharing_client = mock.Mock()
        self.app = create_app(sharing_client=self.sharing_client)
        self.app.config['TESTING'] = True
        self.client = self.app.test_client()
        self.records = [record_payload(), record_payload("Trap", "defensive", 40)]

    def test_health(self):
        response = self.client.get('/health')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()['status'], 'healthy')

    def test_templates(self):
        data = self.client.get('/api/templates').get_json()
        self.assertTrue(data['success'])
        self.assertIn('playbook-complete', [t['id'] for t in data['templates']])

    def test_plan(self):
        response = self.client.post('/api/exports/plan', json={
            'records': self.records,
            'config': {'coverPage': False, 'tableOfContents': False},
        })
        data = response.get_json()
        self.assertEqual(response.status_code, 200)
        self.assertEqual(data['totalSteps'], 5)
        self.assertEqual(len(data['stages']), 5)
        self.assertEqual(data['stages'][0]['name'], 'Initializing')

    def test_analytics(self):
        response = self.client.post('/api/analytics', json={
            'records': self.records,
            'filters': {'categories': ['offensive']},
        })
        analytics = response.get_json()['analytics']
        self.assertEqual(analytics['totalPlays'], 1)
        self.assertEqual(analytics['mostUsedCategory'], 'offensive')

    def test_pdf_export(self):
        response = self.client.post('/api/exports', json={'records': self.records, 'preset': 'playbook-complete'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.mimetype, 'application/pdf')
        self.assertTrue(response.data.startswith(b'%PDF'))
        self.assertIn('attachment', response.headers['Content-Disposition'])
        self.sharing_client.create_share_link.assert_not_called()

    def test_export_with_share_link(self):
        self.sharing_client.create_share_link.return_value = ShareLink(url='http://share/abc')
        response = self.client.post('/api/exports', json={
            'records': self.records,
            'config': {'format': 'csv'},
            'share': {'title': 'Plays'},
        })
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.headers['X-Share-Url'], 'http://share/abc')
        self.assertTrue(response.data.startswith(b'Play ID,'))

    def test_invalid_payloads(self):
        cases = [
            {'records': 'nope'},
            {'records': [{'name': 'missing fields'}]},
            {'records': [], 'config': {'format': 'docx'}},
            {'records': [], 'preset': 'missing'},
        ]
        for payload in cases:
            response = self.client.post('/api/exports', json=payload)
            self.assertEqual(response.status_code, 400, payload)
            data = response.get_json()
            self.assertFalse(data['success'])
            self.assertTrue(data['errors'])

        response = self.client.post('/api/exports', data='not json', content_type='text/plain')
        self.assertEqual(response.status_code, 400)

    def test_out_of_range_effectiveness_rejected(self):
        response = self.client.post('/api/exports', json={'records': [record_payload(effectiveness=120)]})
        self.assertEqual(response.status_code, 400)
        self.assertIn('effectiveness', response.get_json()['errors'][0])

    def test_batch_export(self):
        response = self.client.post('/api/exports/batch', json={
            'config': {'format': 'xlsx'},
            'items': [
                {'records': self.records},
                {'records': self.records[:1], 'config': {'format': 'csv'}},
            ],
        })
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.mimetype, 'application/zip')

        archive = zipfile.ZipFile(io.BytesIO(response.data))
        manifest = json.loads(archive.read('manifest.json'))
        self.assertEqual(len(manifest), 2)
        self.assertTrue(all(entry['success'] for entry in manifest))
        self.assertTrue(manifest[0]['archiveName'].endswith('.xlsx'))
        self.assertTrue(manifest[1]['archiveName'].endswith('.csv'))
        self.assertNotIn('content', manifest[0])
        self.assertEqual(len(archive.namelist()), 3)

    def test_batch_requires_items(self):
        response = self.client.post('/api/exports/batch', json={'items': []})
        self.assertEqual(response.status_code, 400)

    def test_unknown_endpoint_returns_json(self):
        response = self.client.get('/api/nothing')
        self.assertEqual(response.status_code, 404)
        self.assertFalse(response.get_json()['success'])


if __name__ == '__main__':
    unittest.main()
