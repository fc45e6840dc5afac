import pytest

from hookrelay import HandlerCache, HookDispatcher, HookError, HookHandler, HookTargetError, hook_method, install_handler


class CountingHandler:
    instances = 0

    def __init__(self) -> None:
        type(self).instances += 1
        self.calls: list[str] = []

    def on_edit(self, context, name):
        self.calls.append(f"edit:{name}")
        return "edited"

    def on_view(self, context, name):
        self.calls.append(f"view:{name}")


@pytest.fixture(autouse=True)
def reset_counter():
    CountingHandler.instances = 0
    yield
    CountingHandler.instances = 0


def test_handler_instance_is_created_once_and_shared() -> None:
    dispatcher = HookDispatcher(handler_classes={"CountingHandler": CountingHandler})
    params = {"class_name": "CountingHandler"}
    dispatcher.register_handler_method("topic_edit", "on_edit", params=params)
    dispatcher.register_handler_method("topic_view", "on_view", params=params)

    assert "CountingHandler" not in dispatcher.handlers
    dispatcher.fire("topic_edit")
    dispatcher.fire("topic_view")
    dispatcher.fire("topic_edit")

    assert CountingHandler.instances == 1
    handler = dispatcher.handlers.get("CountingHandler")
    assert handler.calls == ["edit:topic_edit", "view:topic_view", "edit:topic_edit"]


def test_delegate_handler_method_returns_result() -> None:
    dispatcher = HookDispatcher(handler_classes={"CountingHandler": CountingHandler})
    dispatcher.register_delegate_handler_method("topic_edit", "on_edit", params={"class_name": "CountingHandler"})

    result = dispatcher.fire("topic_edit")

    assert result.delegated
    assert result.delegate_result == "edited"


def test_unresolvable_handler_class_is_skipped_silently() -> None:
    calls: list[str] = []
    dispatcher = HookDispatcher()
    dispatcher.register_callable("after", lambda ctx, name: calls.append("after"))
    dispatcher.register_handler_method("template_footer", "render", priority=5)
    dispatcher.register_handler_method("template_footer", "render", priority=4, params={"class_name": "Missing"})
    dispatcher.register_function("template_footer", "after", priority=1)

    result = dispatcher.fire("template_footer")

    assert calls == ["after"]
    assert result.template_results == [None, None, None]


def test_missing_handler_method_raises() -> None:
    dispatcher = HookDispatcher(handler_classes={"CountingHandler": CountingHandler})
    dispatcher.register_handler_method("topic_edit", "no_such_method", params={"class_name": "CountingHandler"})

    with pytest.raises(HookTargetError):
        dispatcher.fire("topic_edit")


def test_handler_cache_unknown_class_returns_none() -> None:
    cache = HandlerCache()
    assert cache.get("Nope") is None
    cache.register_factory("Counting", CountingHandler)
    first = cache.get("Counting")
    assert cache.get("Counting") is first
    cache.clear()
    assert cache.get("Counting") is None


class TopicHooks(HookHandler):
    def __init__(self) -> None:
        self.log: list[str] = []

    @hook_method("topic_edit_before", priority=5)
    def retitle(self, context, name):
        context["topic"]["title"] = "My title!"
        self.log.append("retitle")

    @hook_method("template_block_registration_captcha")
    def captcha(self, context, name):
        return context["content"] + "My captcha!"

    @hook_method("topic_load", delegate=True)
    @hook_method(r"^blog_\w+_load$", pattern=True, delegate=True)
    def load(self, context, name):
        return {"loaded_by": name}


def test_install_handler_registers_marked_methods() -> None:
    dispatcher = HookDispatcher()
    handler = install_handler(dispatcher, TopicHooks)

    context = {"topic": {"title": "old"}}
    dispatcher.fire("Topic_Edit_Before", context)

    assert context["topic"]["title"] == "My title!"
    assert handler.log == ["retitle"]
    assert dispatcher.handlers.get("TopicHooks") is handler
    assert dispatcher.render_block_hook("registration_captcha", "<form/>") == "<form/>My captcha!"
    assert dispatcher.fire("topic_load").delegate_result == {"loaded_by": "topic_load"}
    assert dispatcher.fire("blog_post_load").delegate_result == {"loaded_by": "blog_post_load"}
    assert len(dispatcher.registrations()) == 4


class ManualHooks(HookHandler):
    def register_hooks(self) -> None:
        self.add_hook("user_login", self.greet, priority=3)
        self.add_hook("user_token", "issue", delegate=True)

    def greet(self, context, name):
        context["greeted"] = True

    def issue(self, context, name):
        return "token"


def test_manual_register_hooks_and_custom_class_name() -> None:
    dispatcher = HookDispatcher()
    install_handler(dispatcher, ManualHooks, class_name="auth.hooks")

    context: dict = {}
    dispatcher.fire("user_login", context)

    assert context == {"greeted": True}
    assert dispatcher.fire("user_token").delegate_result == "token"
    assert {entry.handler_class for entry in dispatcher.registrations()} == {"auth.hooks"}


class OverridingHooks(TopicHooks):
    def retitle(self, context, name):
        raise AssertionError("no longer a hook")


def test_subclass_override_without_mark_drops_hook() -> None:
    dispatcher = HookDispatcher()
    install_handler(dispatcher, OverridingHooks)

    dispatcher.fire("topic_edit_before", {"topic": {}})
    assert {entry.target for entry in dispatcher.registrations()} == {"captcha", "load"}


def test_unbound_handler_cannot_add_hooks() -> None:
    with pytest.raises(HookError):
        ManualHooks().register_hooks()


def test_install_handler_requires_hook_handler_instances() -> None:
    dispatcher = HookDispatcher()
    with pytest.raises(HookError):
        install_handler(dispatcher, CountingHandler)  # type: ignore[arg-type]


def test_factory_returning_none_is_called_once() -> None:
    calls: list[int] = []

    def factory():
        calls.append(1)
        return None

    cache = HandlerCache({"Lazy": factory})

    assert cache.get("Lazy") is None
    assert cache.get("Lazy") is None
    assert "Lazy" in cache
    assert len(calls) == 1
