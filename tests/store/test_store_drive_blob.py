import unittest
from unittest.mock import Mock, patch

from googleapiclient.errors import HttpError

from clouddrive.errors import AuthError, NotFoundError, StoreUnavailableError
from clouddrive.store.drive_blob import PATH_PROPERTY, GoogleDriveBlobStore


def _http_error(status: int, content: bytes = b"{}") -> HttpError:
    resp = Mock()
    resp.status = status
    resp.reason = "err"
    return HttpError(resp=resp, content=content)


class TestGoogleDriveBlobStore(unittest.TestCase):
    def _store(self, **kwargs):
        service = Mock()
        files_resource = Mock()
        service.files.return_value = files_resource
        store = GoogleDriveBlobStore.from_service(service, "FOLDER", **kwargs)
        return store, files_resource

    def test_from_service_validates(self) -> None:
        with self.assertRaises(ValueError):
            GoogleDriveBlobStore.from_service(Mock(), "")
        with self.assertRaises(ValueError):
            GoogleDriveBlobStore.from_service(Mock(), "F", max_retries=-1)

    def test_upload_returns_drive_id_and_records_path(self) -> None:
        store, files_resource = self._store()
        files_resource.create.return_value.execute.return_value = {"id": "D1"}

        ref = store.upload("u1/abc-a.txt", b"hello", "text/plain")

        self.assertEqual(ref, "D1")
        kwargs = files_resource.create.call_args.kwargs
        self.assertEqual(kwargs["body"]["name"], "abc-a.txt")
        self.assertEqual(kwargs["body"]["parents"], ["FOLDER"])
        self.assertEqual(kwargs["body"]["appProperties"][PATH_PROPERTY], "u1/abc-a.txt")
        self.assertTrue(kwargs["supportsAllDrives"])

    def test_upload_without_id_is_store_unavailable(self) -> None:
        store, files_resource = self._store()
        files_resource.create.return_value.execute.return_value = {}
        with self.assertRaises(StoreUnavailableError):
            store.upload("u1/x", b"1")

    def test_download_reads_all_chunks(self) -> None:
        store, files_resource = self._store()

        def fake_downloader(buffer, request):
            downloader = Mock()
            chunks = iter([(b"ab", False), (b"cd", True)])

            def next_chunk():
                data, done = next(chunks)
                buffer.write(data)
                return None, done

            downloader.next_chunk.side_effect = next_chunk
            return downloader

        with patch("clouddrive.store.drive_blob.MediaIoBaseDownload", side_effect=fake_downloader):
            self.assertEqual(store.download("D1"), b"abcd")
        self.assertEqual(files_resource.get_media.call_args.kwargs["fileId"], "D1")

    def test_remove_ignores_404(self) -> None:
        store, files_resource = self._store()
        files_resource.delete.return_value.execute.side_effect = _http_error(404)
        store.remove("D1")

    def test_remove_propagates_auth_error(self) -> None:
        store, files_resource = self._store()
        files_resource.delete.return_value.execute.side_effect = _http_error(401)
        with self.assertRaises(AuthError):
            store.remove("D1")

    def test_signed_url_is_web_content_link(self) -> None:
        store, files_resource = self._store()
        files_resource.get.return_value.execute.return_value = {
            "id": "D1",
            "webContentLink": "https://drive.example/D1",
        }
        self.assertEqual(store.create_signed_url("D1", 60), "https://drive.example/D1")

        files_resource.get.return_value.execute.return_value = {"id": "D1"}
        with self.assertRaises(StoreUnavailableError):
            store.create_signed_url("D1", 60)

    def test_get_maps_http_404_to_not_found(self) -> None:
        store, files_resource = self._store()
        files_resource.get.return_value.execute.side_effect = _http_error(404)
        with self.assertRaises(NotFoundError):
            store.create_signed_url("X", 60)

    def test_no_retry_by_default(self) -> None:
        store, files_resource = self._store()
        req = files_resource.create.return_value
        req.execute.side_effect = _http_error(503)

        with self.assertRaises(StoreUnavailableError):
            store.upload("u1/x", b"1")
        self.assertEqual(req.execute.call_count, 1)

    @patch("clouddrive.store.drive_blob.time.sleep")
    def test_retries_transient_errors_when_enabled(self, sleep: Mock) -> None:
        store, files_resource = self._store(max_retries=2)
        req = files_resource.create.return_value
        req.execute.side_effect = [_http_error(503), _http_error(429), {"id": "D9"}]

        self.assertEqual(store.upload("u1/x", b"1"), "D9")
        self.assertEqual(req.execute.call_count, 3)
        self.assertEqual(sleep.call_count, 2)

    @patch("clouddrive.store.drive_blob.time.sleep")
    def test_does_not_retry_not_found(self, sleep: Mock) -> None:
        store, files_resource = self._store(max_retries=3)
        req = files_resource.get.return_value
        req.execute.side_effect = _http_error(404)

        with self.assertRaises(NotFoundError):
            store.create_signed_url("X", 60)
        self.assertEqual(req.execute.call_count, 1)
        sleep.assert_not_called()

    def test_quota_reason_from_payload(self) -> None:
        from clouddrive.errors import QuotaExceededError

        store, files_resource = self._store()
        content = b'{"error": {"message": "full", "errors": [{"reason": "storageQuotaExceeded"}]}}'
        files_resource.create.return_value.execute.side_effect = _http_error(403, content)
        with self.assertRaises(QuotaExceededError):
            store.upload("u1/x", b"1")


if __name__ == "__main__":
    unittest.main()
