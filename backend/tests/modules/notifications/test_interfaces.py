from modules.notifications import INotifier, SocketNotifier, NullNotifier


class TestNotifierInterface:
    def test_implementations_satisfy_interface(self):
        assert isinstance(SocketNotifier(api_key="k"), INotifier)
        assert isinstance(NullNotifier(), INotifier)
