import unittest
from unittest import mock

import requests

from playbook.sharing import (
    SharingClient, SharingError, ShareOptions, ShareLink, build_share_request,
)
from playbook.export.types import ReportConfig
from playbook.export.jobs import ExportJob, run_export
from playbook.export.results import attach_share_link, build_failure_result

from factories import make_record


def fake_response(status=201, payload=None, invalid_json=False):
    response = mock.Mock()
    response.status_code = status
    if invalid_json:
        response.json.side_effect = ValueError("not json")
    else:
        response.json.return_value = payload
    return response


class TestShareRequest(unittest.TestCase):
    def test_request_describes_file_without_content(self):
        request = build_share_request(ShareOptions(), resource_id='job-1', file_name='Hockey_playbook_2plays.pdf',
                                      export_format='pdf', file_size=2048, plays_count=2)
        self.assertEqual(request.title, 'Hockey_playbook_2plays.pdf')
        self.assertEqual(request.description, 'Exported 2 tactical plays')
        self.assertEqual(request.type, 'export')
        self.assertEqual(request.resourceData, {'fileName': 'Hockey_playbook_2plays.pdf', 'format': 'pdf',
                                                'fileSize': 2048})
        self.assertIsNotNone(request.expiration)
        self.assertNotIn('content', request.model_dump())

    def test_password_only_sent_when_protected(self):
        options = ShareOptions(password='secret', allowDownload=False, expiresInDays=None)
        request = build_share_request(options, 'job-1', 'a.pdf', 'pdf', 10, 1)
        self.assertIsNone(request.password)
        self.assertEqual(request.permissions, ['view'])
        self.assertIsNone(request.expiration)
        self.assertEqual(request.description, 'Exported 1 tactical play')


class TestSharingClient(unittest.TestCase):
    def setUp(self):
        self.session = mock.Mock()
        self.client = SharingClient('http://sharing.test/api/', timeout=5, session=self.session)
        self.request = build_share_request(ShareOptions(), 'job-1', 'a.pdf', 'pdf', 10, 1)

    def test_creates_link(self):
        self.session.post.return_value = fake_response(201, {'url': 'http://share/x', 'qrCode': 'data:image/png;base64,AA'})
        link = self.client.create_share_link(self.request)
        self.assertEqual(link, ShareLink(url='http://share/x', qrCode='data:image/png;base64,AA'))

        args, kwargs = self.session.post.call_args
        self.assertEqual(args[0], 'http://sharing.test/api/links')
        self.assertEqual(kwargs['timeout'], 5)
        self.assertEqual(kwargs['json']['resourceId'], 'job-1')

    def test_errors(self):
        cases = [
            requests.ConnectionError("refused"),
            fake_response(500, {'error': 'down'}),
            fake_response(200, invalid_json=True),
            fake_response(200, {'id': 'no-url'}),
            fake_response(200, {'url': 'http://share/x', 'qrCode': {'png': 1}}),
        ]
        for case in cases:
            if isinstance(case, Exception):
                self.session.post.side_effect = case
            else:
                self.session.post.side_effect = None
                self.session.post.return_value = case
            with self.assertRaises(SharingError):
                self.client.create_share_link(self.request)


class TestShareAttachment(unittest.TestCase):
    def test_sharing_failure_keeps_successful_run(self):
        client = mock.Mock()
        client.create_share_link.side_effect = SharingError("Sharing service returned HTTP 503")
        job = ExportJob(ReportConfig(format="csv"), sharing_client=client)

        with self.assertLogs('playbook.export.results', level='WARNING'):
            result = job.run([make_record()], share=ShareOptions())
        self.assertTrue(result.success)
        self.assertIsNotNone(result.content)
        self.assertIsNone(result.shareUrl)
        self.assertEqual(result.shareError, 'Sharing service returned HTTP 503')

    def test_share_link_merged_into_result(self):
        client = mock.Mock()
        client.create_share_link.return_value = ShareLink(url='http://share/x', qrCode='qr')
        job = ExportJob(ReportConfig(format="csv"), sharing_client=client)
        result = job.run([make_record()], share=ShareOptions(title='Weekly plays'))

        self.assertEqual(result.shareUrl, 'http://share/x')
        self.assertEqual(result.qrCode, 'qr')
        share_request = client.create_share_link.call_args[0][0]
        self.assertEqual(share_request.title, 'Weekly plays')
        self.assertEqual(share_request.resourceId, job.job_id)

    def test_no_share_without_request(self):
        client = mock.Mock()
        ExportJob(ReportConfig(format="csv"), sharing_client=client).run([make_record()])
        client.create_share_link.assert_not_called()

    def test_failed_result_is_not_shared(self):
        client = mock.Mock()
        result = attach_share_link(build_failure_result('boom'), client, ShareOptions())
        self.assertFalse(result.success)
        client.create_share_link.assert_not_called()

    def test_malformed_reply_keeps_successful_run(self):
        session = mock.Mock()
        session.post.return_value = fake_response(200, {'url': 'http://share/x', 'qrCode': {'png': 1}})
        client = SharingClient('http://sharing.test/api', session=session)
        job = ExportJob(ReportConfig(format="xlsx"), sharing_client=client)

        with self.assertLogs('playbook.export.results', level='WARNING'):
            result = job.run([make_record()], share=ShareOptions())
        self.assertTrue(result.success)
        self.assertIsNone(result.shareUrl)
        self.assertIn('malformed', result.shareError)

    def test_unexpected_client_error_keeps_successful_run(self):
        client = mock.Mock()
        client.create_share_link.side_effect = RuntimeError("connection pool closed")
        job = ExportJob(ReportConfig(format="csv"), sharing_client=client)

        with self.assertLogs('playbook.export.jobs', level='ERROR'):
            result = job.run([make_record()], share=ShareOptions())
        self.assertTrue(result.success)
        self.assertIsNotNone(result.content)
        self.assertEqual(result.shareError, 'Sharing failed: connection pool closed')

    def test_attaching_link_leaves_original_result_untouched(self):
        original = run_export([make_record()], ReportConfig(format="csv"))
        client = mock.Mock()
        client.create_share_link.return_value = ShareLink(url='http://share/x')

        shared = attach_share_link(original, client, ShareOptions())
        self.assertEqual(shared.shareUrl, 'http://share/x')
        self.assertEqual(shared.content, original.content)
        self.assertIsNone(original.shareUrl)
        self.assertIsNone(original.shareError)


if __name__ == '__main__':
    unittest.main()
