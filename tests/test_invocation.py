"""
Tests for call sites and invocation contexts.
"""

from logcall.invocation import CallSite, InvocationContext, InvocationState


def greet(name, greeting="Hello"):
    return f"{greeting} {name}"


def record(event) -> None:
    pass


def collect(first, *rest, **options):
    return first


class Ledger:
    def post(self, account, amount):
        return amount


def make_widget(cls, size):
    return f"{cls}:{size}"


class TestCallSite:
    """Test call site inspection."""

    def test_plain_function(self):
        """Functions are owned by their module."""
        site = CallSite.for_callable(greet)

        assert site.operation_name == "greet"
        assert site.owner_name == __name__
        assert site.parameter_names == ("name", "greeting")
        assert site.returns_value is True
        assert site.bound_method is False

    def test_method_drops_receiver(self):
        """Methods are owned by their class and do not report self."""
        site = CallSite.for_callable(Ledger.post)

        assert site.owner_name == f"{__name__}.Ledger"
        assert site.owner_simple_name == "Ledger"
        assert site.parameter_names == ("account", "amount")
        assert site.bound_method is True

    def test_cls_parameter_outside_class(self):
        """Only functions defined in a class body drop their first argument."""
        site = CallSite.for_callable(make_widget)

        assert site.bound_method is False
        assert site.parameter_names == ("cls", "size")
        assert site.describe(("widget", 3)) == (["cls", "size"], ["widget", 3])

    def test_nested_function_owned_by_module(self):
        """Functions defined inside functions are owned by their module."""

        def handler(self, event):
            return event

        site = CallSite.for_callable(handler)

        assert site.owner_name == __name__
        assert site.bound_method is False

    def test_class_defined_in_function(self):
        class Worker:
            def run(self, job):
                return job

        site = CallSite.for_callable(Worker.run)

        assert site.owner_name == f"{__name__}.Worker"
        assert site.owner_simple_name == "Worker"
        assert site.bound_method is True
        assert CallSite.for_callable(greet, owner=Worker).owner_name == f"{__name__}.Worker"

    def test_none_annotation_means_no_return_value(self):
        """Functions annotated as returning None have no return value."""
        assert CallSite.for_callable(record).returns_value is False

    def test_explicit_owner(self):
        """Front-ends can name the declaring class."""
        site = CallSite.for_callable(greet, owner=Ledger)

        assert site.owner_name == f"{__name__}.Ledger"

    def test_describe_applies_defaults(self):
        """Defaults are reported like passed arguments."""
        site = CallSite.for_callable(greet)

        names, values = site.describe(("Ada",), {})

        assert names == ["name", "greeting"]
        assert values == ["Ada", "Hello"]

    def test_describe_skips_self(self):
        site = CallSite.for_callable(Ledger.post)

        names, values = site.describe((Ledger(), "acc-1"), {"amount": 250})

        assert names == ["account", "amount"]
        assert values == ["acc-1", 250]

    def test_describe_expands_variadic_arguments(self):
        """*args items are indexed, **kwargs items keep their key."""
        site = CallSite.for_callable(collect)

        names, values = site.describe((1, 2, 3), {"mode": "fast"})

        assert names == ["first", "rest[0]", "rest[1]", "mode"]
        assert values == [1, 2, 3, "fast"]

    def test_describe_unbindable_arguments(self):
        """Arguments that do not fit the signature lose their names."""
        site = CallSite.for_callable(greet)

        names, values = site.describe(("a", "b", "c"), {})

        assert names is None
        assert values == ["a", "b", "c"]

    def test_describe_without_signature(self):
        """Hand-built call sites pair positional values with given names."""
        site = CallSite(operation_name="op", owner_name="jobs", parameter_names=("a", "b"))

        assert site.describe((1, 2)) == (["a", "b"], [1, 2])
        assert site.describe((1,), {"b": 2}) == (["a", "b"], [1, 2])
        assert site.describe((1, 2, 3)) == (None, [1, 2, 3])

    def test_describe_without_names(self):
        site = CallSite(operation_name="op", owner_name="jobs")

        assert site.describe((1, None)) == (None, [1, None])


class TestInvocationContext:
    """Test per-call records."""

    def test_for_call(self):
        context = InvocationContext.for_call(CallSite.for_callable(greet), ("Ada",))

        assert context.operation_name == "greet"
        assert context.parameter_values == ["Ada", "Hello"]
        assert context.state == InvocationState.IDLE

    def test_lifecycle_success(self):
        """A successful call records its result and duration."""
        context = InvocationContext(operation_name="op", owner_name="jobs.Worker")

        context.begin(10.0)
        assert context.state == InvocationState.RUNNING
        context.complete("done")
        assert context.state == InvocationState.COMPLETED
        context.finish(10.5)

        assert context.result == "done"
        assert context.failed is False
        assert context.duration_millis == 500
        assert context.state == InvocationState.FORMATTING
        assert context.owner_simple_name == "Worker"

    def test_lifecycle_failure(self):
        """A failed call records the failure and no result."""
        context = InvocationContext(operation_name="op", owner_name="jobs")
        error = ValueError("boom")

        context.begin(1.0)
        context.fail(error)

        assert context.failure is error
        assert context.result is None
        assert context.failed is True
        assert context.state == InvocationState.FAILED

    def test_duration_never_negative(self):
        context = InvocationContext(operation_name="op", owner_name="jobs")

        context.begin(5.0)
        context.finish(4.0)

        assert context.duration_millis == 0
