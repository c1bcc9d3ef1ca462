from typing import ClassVar, Union, Callable, TypeVar, Any, cast

T = TypeVar("T")


class Annotations:
    """Defines the attributes used by decorators to annotate handlers"""

    ON: ClassVar[str] = "_fileserver_on"
    ON_PRIORITY: ClassVar[str] = "_fileserver_on_priority"

    @staticmethod
    def Meta(scope: Any) -> dict[str, Any]:
        """Returns the dictionary of meta attributes for the given value."""
        if hasattr(scope, "__dict__"):
            return cast(dict[str, Any], scope.__dict__)
        else:
            raise RuntimeError(f"Metadata cannot be attached to object: {scope}")


def on(
    priority: int = 0, **methods: Union[str, list[str], tuple[str, ...]]
) -> Callable[[T], T]:
    """The @on decorator wraps an existing method and indicates that it
    will be used to process an HTTP request.

    The keyword arguments are HTTP methods joined by `_`, like `GET_HEAD`,
    or `*` for any method (see `Dispatcher.ANY`), mapped to one or more
    URI patterns (see `Route`) that trigger the method when matched.

    For instance:

    >    @on(GET_HEAD="/assets/{path:any}")

    implies that the wrapped method is like

    >    def asset(self, request, path):
    >        ....

    and it must return a response, see `HTTPRequest.respond`."""

    def decorator(function: T) -> T:
        meta = Annotations.Meta(function)
        v = meta.setdefault(Annotations.ON, [])
        meta.setdefault(Annotations.ON_PRIORITY, priority)
        for http_methods, url in list(methods.items()):
            urls = (url,) if isinstance(url, str) else url
            for http_method in http_methods.upper().split("_"):
                for _ in urls:
                    v.append((http_method, _))
        return function

    return decorator


# EOF
