"""
Authorization Tests
-------------------
Channel permissions and channel name resolution.
"""

import pytest

from api.messenger import Conversation
from core.errors import MessengerError
from security.permissions import ALL_CHANNELS, AuthorizationResolver, ChannelDirectory
from tests.conftest import FakeMessenger, build_catalog, deploy_tool


def resolver_for(catalog, messenger=None):
    directory = ChannelDirectory(messenger) if messenger is not None else None
    return AuthorizationResolver(catalog.admin, directory)


class TestIsAuthorized:

    def test_listed_channel(self, catalog):
        tool = catalog.lookup_tool("deploy")
        assert resolver_for(catalog).is_authorized("C123", tool)

    def test_unlisted_channel(self, catalog):
        tool = catalog.lookup_tool("deploy")
        assert not resolver_for(catalog).is_authorized("C999", tool)

    def test_admin_channel_always_allowed(self):
        catalog = build_catalog([deploy_tool(permissions=[])])
        tool = catalog.lookup_tool("deploy")
        assert resolver_for(catalog).is_authorized("CADMIN", tool)

    def test_all_sentinel(self):
        catalog = build_catalog([deploy_tool(permissions=["all"])])
        tool = catalog.lookup_tool("deploy")
        assert resolver_for(catalog).is_authorized("CANY", tool)

    def test_no_permissions_denies(self):
        catalog = build_catalog([deploy_tool(permissions=[])])
        tool = catalog.lookup_tool("deploy")
        assert not resolver_for(catalog).is_authorized("C123", tool)

    @pytest.mark.parametrize("extra", [["C999"], ["all"], ["C1", "C2", "C3"]])
    def test_adding_permissions_never_revokes(self, extra):
        before = build_catalog([deploy_tool(permissions=["C123"])])
        after = build_catalog([deploy_tool(permissions=["C123"] + extra)])
        for channel in ("C123", "CADMIN"):
            assert resolver_for(after).is_authorized(channel, after.lookup_tool("deploy"))
            assert resolver_for(before).is_authorized(channel, before.lookup_tool("deploy"))


class TestChannelDirectory:

    def test_names_private_first(self):
        messenger = FakeMessenger()
        directory = ChannelDirectory(messenger)
        assert directory.names(["C123", "CADMIN"]) == ["admins", "deploys"]

    def test_order_follows_listing(self):
        directory = ChannelDirectory(FakeMessenger())
        assert directory.names(["C999", "C123"]) == ["deploys", "random"]

    def test_unknown_falls_back_to_all(self):
        directory = ChannelDirectory(FakeMessenger())
        assert directory.names(["CNOPE"]) == [ALL_CHANNELS]

    def test_listing_failure_is_empty(self):
        messenger = FakeMessenger()

        def broken(conversation_type):
            raise MessengerError("missing_scope")

        messenger.list_conversations = broken
        directory = ChannelDirectory(messenger)
        assert directory.names_by_type(["C123"], "public_channel") == []
        assert directory.names(["C123"]) == [ALL_CHANNELS]


class TestAllowedChannels:

    def test_names_for_permissions(self, catalog, messenger):
        tool = catalog.lookup_tool("deploy")
        assert resolver_for(catalog, messenger).allowed_channels(tool) == ["deploys"]

    def test_all_permission_shows_all(self, messenger):
        catalog = build_catalog([deploy_tool(permissions=["all"])])
        tool = catalog.lookup_tool("deploy")
        assert resolver_for(catalog, messenger).allowed_channels(tool) == [ALL_CHANNELS]

    def test_channel_name(self, catalog, messenger):
        assert resolver_for(catalog, messenger).channel_name("C123") == "deploys"

    def test_channel_name_unknown(self, catalog):
        messenger = FakeMessenger(conversations={})
        assert resolver_for(catalog, messenger).channel_name("C123") == ALL_CHANNELS

    def test_without_directory(self, catalog):
        tool = catalog.lookup_tool("deploy")
        resolver = resolver_for(catalog)
        assert resolver.allowed_channels(tool) == ["C123"]
        assert resolver.channel_name("C123") == "C123"

    def test_empty_private_listing(self, catalog):
        messenger = FakeMessenger(conversations={
            "public_channel": [Conversation(id="C123", name="deploys")],
            "private_channel": [],
        })
        tool = catalog.lookup_tool("deploy")
        assert resolver_for(catalog, messenger).allowed_channels(tool) == ["deploys"]

    def test_allowed_channel_names(self, catalog, messenger):
        resolver = resolver_for(catalog, messenger)
        assert resolver.allowed_channel_names(["C999", "CADMIN"]) == ["admins", "random"]
        assert resolver.allowed_channel_names(["CNOPE"]) == [ALL_CHANNELS]

    def test_allowed_channel_names_without_directory(self, catalog):
        resolver = resolver_for(catalog)
        assert resolver.allowed_channel_names(["C1", "C2"]) == ["C1", "C2"]
        assert resolver.allowed_channel_names([]) == [ALL_CHANNELS]
