"""Tests for settings caching and client capabilities."""

import asyncio
import unittest

from lsprotocol import types as lsp

from fnlang_lsp.settings import (
    DEFAULT_MAX_NUMBER_OF_PROBLEMS,
    ClientFeatures,
    Settings,
    SettingsCache,
)


class TestSettings(unittest.TestCase):
    def test_defaults(self):
        self.assertEqual(
            Settings().max_number_of_problems, DEFAULT_MAX_NUMBER_OF_PROBLEMS,
        )
        self.assertEqual(Settings.from_config(None), Settings())
        self.assertEqual(Settings.from_config({}), Settings())

    def test_from_config(self):
        config = Settings.from_config({'maxNumberOfProblems': 7})
        self.assertEqual(config.max_number_of_problems, 7)

    def test_invalid_value(self):
        for value in ('10', None, True, [1], float('inf'), float('nan')):
            self.assertEqual(
                Settings.from_config({'maxNumberOfProblems': value}),
                Settings(),
            )


    def test_fractional_cap_rounds_up(self):
        config = Settings.from_config({'maxNumberOfProblems': 2.5})
        self.assertEqual(config.max_number_of_problems, 3)


class TestSettingsCache(unittest.IsolatedAsyncioTestCase):
    async def test_global_without_fetch(self):
        cache = SettingsCache()
        self.assertFalse(cache.per_document)
        self.assertEqual(await cache.get('file:///a.fn'), Settings())
        cache.update_global({'maxNumberOfProblems': 3})
        config = await cache.get('file:///a.fn')
        self.assertEqual(config.max_number_of_problems, 3)

    async def test_fetch_once_per_document(self):
        calls = []

        async def fetch(uri):
            calls.append(uri)
            return {'maxNumberOfProblems': 5}

        cache = SettingsCache(fetch)
        first, second = await asyncio.gather(
            cache.get('file:///a.fn'), cache.get('file:///a.fn'),
        )
        self.assertEqual(first.max_number_of_problems, 5)
        self.assertEqual(second, first)
        await cache.get('file:///b.fn')
        self.assertEqual(calls, ['file:///a.fn', 'file:///b.fn'])

    async def test_forget_and_clear(self):
        calls = []

        async def fetch(uri):
            calls.append(uri)
            return {'maxNumberOfProblems': len(calls)}

        cache = SettingsCache(fetch)
        await cache.get('file:///a.fn')
        self.assertIn('file:///a.fn', cache)
        cache.forget('file:///a.fn')
        self.assertNotIn('file:///a.fn', cache)
        config = await cache.get('file:///a.fn')
        self.assertEqual(config.max_number_of_problems, 2)
        cache.clear()
        config = await cache.get('file:///a.fn')
        self.assertEqual(config.max_number_of_problems, 3)

    async def test_failed_fetch_falls_back(self):
        attempts = []

        async def fetch(uri):
            attempts.append(uri)
            raise asyncio.TimeoutError()

        cache = SettingsCache(fetch)
        self.assertEqual(await cache.get('file:///a.fn'), Settings())
        self.assertNotIn('file:///a.fn', cache)
        await cache.get('file:///a.fn')
        self.assertEqual(len(attempts), 2)

    async def test_late_failure_keeps_newer_entry(self):
        uri = 'file:///a.fn'
        started = asyncio.Event()
        gate = asyncio.Event()
        ok_calls = []

        async def failing_fetch(uri):
            started.set()
            await gate.wait()
            raise asyncio.TimeoutError()

        async def fetch(uri):
            ok_calls.append(uri)
            return {'maxNumberOfProblems': 9}

        cache = SettingsCache(failing_fetch)
        first = asyncio.ensure_future(cache.get(uri))
        await started.wait()
        # Replacing the fetch drops the pending entry
        cache.set_fetch(fetch)
        second = await cache.get(uri)
        self.assertEqual(second.max_number_of_problems, 9)

        gate.set()
        self.assertEqual(await first, Settings())
        self.assertIn(uri, cache)
        self.assertEqual(await cache.get(uri), second)
        self.assertEqual(ok_calls, [uri])


class TestClientFeatures(unittest.TestCase):
    def test_empty_capabilities(self):
        features = ClientFeatures.from_capabilities(lsp.ClientCapabilities())
        self.assertEqual(features, ClientFeatures())

    def test_full_capabilities(self):
        caps = lsp.ClientCapabilities(
            workspace=lsp.WorkspaceClientCapabilities(
                configuration=True,
                workspace_folders=True,
                diagnostics=lsp.DiagnosticWorkspaceClientCapabilities(
                    refresh_support=True,
                ),
            ),
            text_document=lsp.TextDocumentClientCapabilities(
                publish_diagnostics=lsp.PublishDiagnosticsClientCapabilities(
                    related_information=True,
                ),
                diagnostic=lsp.DiagnosticClientCapabilities(),
            ),
        )
        features = ClientFeatures.from_capabilities(caps)
        self.assertTrue(features.configuration)
        self.assertTrue(features.workspace_folders)
        self.assertTrue(features.related_information)
        self.assertTrue(features.pull_diagnostics)
        self.assertTrue(features.diagnostic_refresh)


if __name__ == '__main__':
    unittest.main()
