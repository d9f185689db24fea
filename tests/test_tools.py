import unittest

from n8n_tools_mcp.adapter import AdapterConfig, N8nClient, ToolExecutor
from n8n_tools_mcp.adapter.auth import extract_api_key
from n8n_tools_mcp.adapter.errors import AuthError, UnknownOperationError
from n8n_tools_mcp.adapter.tools import clean_params, status_for

from n8n_stub import FakeN8n

TOKEN = "valid-token"


class TestToolExecutor(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.n8n = await FakeN8n().start()
        self.executor = ToolExecutor(N8nClient(AdapterConfig(base_url=self.n8n.base_url)))

    async def asyncTearDown(self):
        await self.n8n.close()

    async def test_prefixed_and_bare_tool_names(self):
        self.assertEqual(self.executor.resolve("customn8n_getWorkflows"), "getWorkflows")
        self.assertEqual(self.executor.resolve("getWorkflows"), "getWorkflows")
        with self.assertRaises(UnknownOperationError):
            self.executor.resolve("customn8n_launchRocket")

    async def test_success_envelope(self):
        self.n8n.respond("GET", "/workflows/wf-1", body={"id": "wf-1", "name": "Test Workflow"})

        result = await self.executor.invoke("customn8n_getWorkflow", {"id": "wf-1"}, TOKEN)

        self.assertEqual(result, {
            "success": True,
            "responseType": "mixed",
            "data": {"id": "wf-1", "name": "Test Workflow", "tool_type": "n8n", "authenticated": True},
        })

    async def test_list_payload_is_wrapped(self):
        self.n8n.respond("GET", "/workflows/wf-1/tags", body=[{"id": "t1", "name": "ops"}])
        result = await self.executor.invoke("customn8n_getWorkflowTags", {"id": "wf-1"}, TOKEN)
        self.assertTrue(result["success"])
        self.assertEqual(result["data"]["items"], [{"id": "t1", "name": "ops"}])

    async def test_internal_parameters_are_dropped(self):
        await self.executor.invoke(
            "customn8n_createTag",
            {"name": "ops", "sessionId": "s-1", "chatId": "c-1", "toolName": "customn8n_createTag"},
            TOKEN,
        )
        self.assertEqual(self.n8n.requests[0]["json"], {"name": "ops"})

    async def test_error_envelope(self):
        self.n8n.respond("GET", "/workflows/wf-404", status=404, body={"message": "Not Found"})

        result = await self.executor.invoke("customn8n_getWorkflow", {"id": "wf-404"}, TOKEN)

        self.assertFalse(result["success"])
        self.assertEqual(result["error"]["code"], 404)
        self.assertEqual(result["error"]["message"], "Resource not found")
        self.assertIn("wf-404", result["error"]["details"])
        self.assertEqual(status_for(result), 404)

    async def test_unknown_tool_envelope(self):
        result = await self.executor.invoke("customn8n_launchRocket", {}, TOKEN)
        self.assertEqual(result["error"]["code"], 404)
        self.assertIn("customn8n_getWorkflows", result["error"]["details"])
        self.assertEqual(self.n8n.requests, [])

    async def test_validation_envelope(self):
        result = await self.executor.invoke("customn8n_getUsers", {"limit": 3.5}, TOKEN)
        self.assertEqual(result["error"]["code"], 400)
        self.assertEqual(self.n8n.requests, [])

    def test_list_tools(self):
        tools = self.executor.list_tools()
        self.assertEqual(len(tools), 40)
        get_workflow = next(t for t in tools if t["name"] == "customn8n_getWorkflow")
        self.assertEqual(get_workflow["method"], "GET")
        self.assertEqual(get_workflow["path"], "/workflows/{id}")
        self.assertEqual(get_workflow["parameters"][0]["in"], "path")

    def test_status_for_symbolic_codes(self):
        self.assertEqual(status_for({"success": False, "error": {"code": "TIMEOUT"}}), 500)
        self.assertEqual(status_for({"success": True, "data": {}}), 200)

    def test_clean_params(self):
        self.assertEqual(clean_params({"limit": 5, "requestId": "r", "userId": "u"}), {"limit": 5})
        self.assertIsNone(clean_params(None))


class TestExtractApiKey(unittest.TestCase):

    def test_api_key_headers_take_priority_over_bearer(self):
        headers = {"x-api-key": "header-key", "authorization": "Bearer bearer-key"}
        self.assertEqual(extract_api_key(headers), "header-key")
        self.assertEqual(extract_api_key({"x-apikey": "first", "x-api-key": "second"}), "first")

    def test_bearer_fallback(self):
        self.assertEqual(extract_api_key({"authorization": "Bearer bearer-key"}), "bearer-key")

    def test_empty_header_counts_as_absent(self):
        self.assertEqual(extract_api_key({"x-apikey": "", "x-api-key": "second"}), "second")
        self.assertEqual(extract_api_key({"x-apikey": "", "authorization": "Bearer bearer-key"}), "bearer-key")
        with self.assertRaises(AuthError) as ctx:
            extract_api_key({"x-apikey": ""})
        self.assertEqual(ctx.exception.message, "n8n API key required")

    def test_repeated_header_uses_first_value(self):
        self.assertEqual(extract_api_key({"x-api-key": ["one", "two"]}), "one")

    def test_rejections(self):
        for headers in ({"x-api-key": []}, {"x-api-key": "  "}, {}, {"authorization": "Basic abc"}):
            with self.subTest(headers=headers):
                with self.assertRaises(AuthError) as ctx:
                    extract_api_key(headers)
                self.assertEqual(ctx.exception.code, 401)

        with self.assertRaises(AuthError) as ctx:
            extract_api_key({"x-api-key": []})
        self.assertEqual(ctx.exception.message, "Empty API key array provided")


if __name__ == '__main__':
    unittest.main()
