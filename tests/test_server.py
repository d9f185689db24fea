import unittest

import httpx

from n8n_tools_mcp.adapter import AdapterConfig
from n8n_tools_mcp.server_streamablehttp import create_app

from n8n_stub import FakeN8n


class TestHTTPServer(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.n8n = await FakeN8n().start()
        app = create_app(AdapterConfig(base_url=self.n8n.base_url))
        self.http = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")

    async def asyncTearDown(self):
        await self.http.aclose()
        await self.n8n.close()

    async def test_tool_call(self):
        self.n8n.respond("GET", "/workflows/wf-1", body={"id": "wf-1", "active": True})

        response = await self.http.post(
            "/tools/customn8n_getWorkflow", json={"id": "wf-1"}, headers={"x-api-key": "key-1"}
        )

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["data"]["id"], "wf-1")
        self.assertEqual(self.n8n.requests[0]["headers"]["X-N8N-API-KEY"], "key-1")

    async def test_api_key_header_preferred_over_bearer(self):
        await self.http.post(
            "/tools/customn8n_getTags", json={},
            headers={"x-apikey": "api-key", "Authorization": "Bearer bearer-token"},
        )
        self.assertEqual(self.n8n.requests[0]["headers"]["X-N8N-API-KEY"], "api-key")

    async def test_bearer_token(self):
        response = await self.http.post(
            "/tools/customn8n_getTags", json={}, headers={"Authorization": "Bearer bearer-token"}
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.n8n.requests[0]["headers"]["X-N8N-API-KEY"], "bearer-token")

    async def test_missing_credential(self):
        response = await self.http.post("/tools/customn8n_getTags", json={})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["error"]["message"], "n8n API key required")
        self.assertEqual(self.n8n.requests, [])

    async def test_invalid_json_body(self):
        response = await self.http.post(
            "/tools/customn8n_getTags", content=b"{not json", headers={"x-api-key": "key-1"}
        )
        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.json()["success"])

    async def test_unknown_tool(self):
        response = await self.http.post("/tools/customn8n_launchRocket", json={})
        self.assertEqual(response.status_code, 404)
        self.assertIn("Available n8n tools", response.json()["error"]["details"])

    async def test_upstream_error_status_is_forwarded(self):
        self.n8n.respond("DELETE", "/tags/t1", status=404, body={"message": "Not Found"})
        response = await self.http.post(
            "/tools/customn8n_deleteTag", json={"id": "t1"}, headers={"x-api-key": "key-1"}
        )
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"]["code"], 404)

    async def test_list_tools_and_health(self):
        response = await self.http.get("/tools")
        self.assertEqual(response.json()["count"], 40)

        response = await self.http.get("/health")
        self.assertEqual(response.json()["status"], "healthy")
        self.assertEqual(response.json()["upstream"], self.n8n.base_url)


class TestMCPEndpoint(unittest.IsolatedAsyncioTestCase):
    """MCP JSON-RPC requests against the streamable HTTP mount."""

    MCP_HEADERS = {"Accept": "application/json, text/event-stream", "Content-Type": "application/json"}

    async def asyncSetUp(self):
        self.n8n = await FakeN8n().start()
        self.app = create_app(AdapterConfig(base_url=self.n8n.base_url, api_key="env-key"))
        self.http = httpx.AsyncClient(transport=httpx.ASGITransport(app=self.app), base_url="http://testserver")

    async def asyncTearDown(self):
        await self.http.aclose()
        await self.n8n.close()

    async def rpc(self, method, params, headers=None):
        async with self.app.router.lifespan_context(self.app):
            response = await self.http.post(
                "/mcp/",
                json={"jsonrpc": "2.0", "id": 1, "method": method, "params": params},
                headers={**self.MCP_HEADERS, **(headers or {})},
            )
        self.assertEqual(response.status_code, 200)
        return response.json()["result"]

    async def test_list_tools(self):
        result = await self.rpc("tools/list", {})
        names = [tool["name"] for tool in result["tools"]]
        self.assertEqual(len(names), 40)
        self.assertIn("customn8n_getWorkflow", names)

    async def test_call_tool_forwards_request_api_key(self):
        self.n8n.respond("GET", "/workflows/wf-1", body={"id": "wf-1"})

        result = await self.rpc(
            "tools/call", {"name": "customn8n_getWorkflow", "arguments": {"id": "wf-1"}},
            headers={"x-api-key": "mcp-key"},
        )

        self.assertFalse(result.get("isError"))
        self.assertIn('"id": "wf-1"', result["content"][0]["text"])
        self.assertEqual(self.n8n.requests[0]["headers"]["X-N8N-API-KEY"], "mcp-key")

    async def test_call_tool_without_header_uses_configured_key(self):
        result = await self.rpc("tools/call", {"name": "customn8n_getTags", "arguments": {}})
        self.assertFalse(result.get("isError"))
        self.assertEqual(self.n8n.requests[0]["headers"]["X-N8N-API-KEY"], "env-key")

    async def test_call_tool_upstream_error_is_flagged(self):
        self.n8n.respond("GET", "/workflows/wf-404", status=404, body={"message": "Not Found"})

        result = await self.rpc(
            "tools/call", {"name": "customn8n_getWorkflow", "arguments": {"id": "wf-404"}},
            headers={"x-api-key": "mcp-key"},
        )

        self.assertTrue(result["isError"])
        self.assertTrue(result["content"][0]["text"].startswith("Error (404): Resource not found"))


if __name__ == '__main__':
    unittest.main()
