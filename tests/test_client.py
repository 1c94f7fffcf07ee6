import unittest

import httpx
from fastapi.testclient import TestClient

from cpauth.auth import authenticate, register_user
from cpauth.client import RemoteCoordinator
from cpauth.config import Settings
from cpauth.crypto import PublicParameters, default_parameters
from cpauth.errors import AuthError, NoPendingChallenge, ParameterMismatch, StorageFailure
from cpauth.server import create_app
from cpauth.session import NotRegistered, SessionCoordinator
from cpauth.store import MemoryStore


class TestLocalHelpers(unittest.TestCase):
    def setUp(self) -> None:
        self.params = default_parameters()
        self.coordinator = SessionCoordinator(self.params, MemoryStore())

    def test_register_then_authenticate(self) -> None:
        registered = register_user(self.coordinator, self.params, "dave", "s3cret")
        self.assertEqual(registered["outcome"], "registered")
        result = authenticate(self.coordinator, self.params, "dave", "s3cret")
        self.assertTrue(result["success"])
        self.assertIn("session_token", result)

    def test_wrong_password(self) -> None:
        register_user(self.coordinator, self.params, "dave", "s3cret")
        result = authenticate(self.coordinator, self.params, "dave", "s3cre7")
        self.assertEqual(result["outcome"], "wrong_credentials")
        self.assertFalse(result["success"])

    def test_unknown_user(self) -> None:
        result = authenticate(self.coordinator, self.params, "erin", "s3cret")
        self.assertEqual(result, {"outcome": "not_registered", "success": False})


class TestRemoteCoordinator(unittest.TestCase):
    def setUp(self) -> None:
        app = create_app(Settings(store="memory://"), store=MemoryStore())
        self.remote = RemoteCoordinator("http://testserver", client=TestClient(app))
        self.addCleanup(self.remote.close)

    def test_end_to_end(self) -> None:
        params = self.remote.check_params()
        self.assertEqual(params, default_parameters())
        register_user(self.remote, params, "frank", "pa55word")
        self.assertTrue(authenticate(self.remote, params, "frank", "pa55word")["success"])
        self.assertFalse(authenticate(self.remote, params, "frank", "pa55w0rd")["success"])

    def test_outcomes_and_errors(self) -> None:
        params = default_parameters()
        self.assertEqual(self.remote.begin_challenge("ghost", params.g, params.h), NotRegistered())
        ack = self.remote.register("frank", params.g, params.h)
        with self.assertRaises(NoPendingChallenge):
            self.remote.verify(ack.auth_id, 1)


class TestTransportErrors(unittest.TestCase):
    def test_status_mapping(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, json={"error": "StorageFailure", "detail": "offline"})

        client = httpx.Client(base_url="http://cpauth", transport=httpx.MockTransport(handler))
        with RemoteCoordinator("http://cpauth", client=client) as remote:
            with self.assertRaises(StorageFailure):
                remote.verify("0" * 64, 1)

    def test_unreachable_server(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client = httpx.Client(base_url="http://cpauth", transport=httpx.MockTransport(handler))
        with RemoteCoordinator("http://cpauth", client=client) as remote:
            with self.assertRaises(AuthError):
                remote.check_params()


class TestParameterPinning(unittest.TestCase):
    def setUp(self) -> None:
        self.requests = []

    def remote_advertising(self, advertised) -> RemoteCoordinator:
        def handler(request: httpx.Request) -> httpx.Response:
            self.requests.append((request.method, request.url.path))
            if request.url.path == "/params":
                return httpx.Response(200, json=advertised)
            return httpx.Response(200, json={"outcome": "registered", "auth_id": "0" * 64})

        client = httpx.Client(base_url="http://cpauth", transport=httpx.MockTransport(handler))
        remote = RemoteCoordinator("http://cpauth", client=client)
        self.addCleanup(remote.close)
        return remote

    def test_foreign_group_is_rejected_before_registration(self) -> None:
        remote = self.remote_advertising({"p": "17", "q": "b", "g": "4", "h": "9"})
        self.assertEqual(remote.params, default_parameters())
        with self.assertRaises(ParameterMismatch):
            register_user(remote, remote.params, "alice", "Z")
        with self.assertRaises(ParameterMismatch):
            remote.check_params()
        self.assertNotIn(("POST", "/register"), self.requests)

    def test_malformed_params_are_rejected(self) -> None:
        remote = self.remote_advertising({"p": "17", "q": "b"})
        with self.assertRaises(ParameterMismatch):
            remote.check_params()
        remote = self.remote_advertising({"p": "not hex", "q": "b", "g": "4", "h": "9"})
        with self.assertRaises(ParameterMismatch):
            remote.check_params()

    def test_matching_params_are_checked_once(self) -> None:
        remote = self.remote_advertising(default_parameters().to_dict())
        register_user(remote, remote.params, "alice", "Z")
        register_user(remote, remote.params, "bob", "Z")
        self.assertEqual(self.requests.count(("GET", "/params")), 1)
        self.assertEqual(self.requests.count(("POST", "/register")), 2)

    def test_prover_params_must_match_coordinator(self) -> None:
        coordinator = SessionCoordinator(default_parameters(), MemoryStore())
        toy = PublicParameters(p=23, q=11, g=4, h=9)
        with self.assertRaises(ParameterMismatch):
            register_user(coordinator, toy, "alice", "Z")


if __name__ == "__main__":
    unittest.main()
