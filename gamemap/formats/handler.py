"""
Base class and defaults for map format handlers

=============================================================================
THE HANDLER CONTRACT
=============================================================================

One handler per game format.  A handler is a class with classmethods only;
it is never instantiated and holds no state:

    metadata()              -> HandlerMetadata
    supps(filename, main)   -> None or {supp_id: filename}
    parse(content)          -> Map
    check_limits(map)       -> [issue, ...]
    generate(map)           -> content

`content` is a dict of byte buffers.  'main' is the map file itself; any
other keys are supplementary files named by supps():

    {'main': b'...', 'enemy': b'...'}

generate() returns the same shape, so the output of generate() can be fed
straight back into parse().

=============================================================================
SAVING SAFELY
=============================================================================

generate() does not validate.  Call check_limits() first; if it returns an
empty list the map can be written.  If not, generate() may produce a file
the game cannot load, or fail outright.

    issues = Handler.check_limits(map)
    if issues:
        for issue in issues:
            print(issue)
    else:
        content = Handler.generate(map)

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..map import ListLayer, Map, Map2D, TiledLayer

# Content passed to parse() and returned by generate().
MapContent = Dict[str, bytes]


@dataclass(frozen=True)
class HandlerMetadata:
    """
    Static description of a format.

    id:     unique identifier, e.g. "map-cosmo"
    title:  user-friendly format name
    games:  names of games using this format
    params: optional parameters the handler understands, name -> description
    """
    id: str = "unknown"
    title: str = "Unknown format"
    games: tuple = ()
    params: Dict[str, str] = field(default_factory=dict)


class MapHandler:
    """
    Base class for format handlers.

    Subclasses override metadata(), parse() and generate(), and usually
    extend check_limits() by calling the base implementation first.
    """

    @classmethod
    def metadata(cls) -> HandlerMetadata:
        return HandlerMetadata()

    @classmethod
    def supps(cls, filename: str, main: bytes) -> Optional[Dict[str, str]]:
        """
        List the supplementary files needed alongside `filename`.

        Parameters:
        -----------
        filename : str
            Name of the main map file
        main : bytes
            Content of the main map file, in case it names other files

        Returns:
        --------
        None if there are no supplementary files, otherwise a dict of
        handler-specific id -> expected filename.  Names are matched
        case-insensitively by callers.  Never alter a name passed in, but
        anything this method adds (an extension, say) is lowercase.
        """
        return None

    @classmethod
    def parse(cls, content: MapContent) -> Map:
        raise NotImplementedError("Not implemented yet.")

    @classmethod
    def generate(cls, map: Map) -> MapContent:
        raise NotImplementedError("Not implemented yet.")

    @classmethod
    def check_limits(cls, map: Map) -> List[str]:
        """
        List every problem preventing `map` from being written.

        The base checks cover what every format needs: attribute values are
        valid, item attribute values and texts are valid, and every tiled
        layer's grid matches its size.  Does not modify `map`.

        Returns:
        --------
        list of str : empty when the map is safe to generate()
        """
        issues: List[str] = []

        for attr_id, attr in map.attributes.items():
            reason = attr.problem(attr.value)
            if reason:
                issues.append(f"Map attribute '{attr_id}': {reason}")

        if isinstance(map, Map2D):
            for layer in map.layers:
                if isinstance(layer, TiledLayer):
                    reason = layer.size_problem(map.map_size)
                    if reason:
                        issues.append(
                            f"{reason}  If you have resized this level, it is "
                            f"a bug in the level editor.  If not, it is a bug "
                            f"in the map handler."
                        )
                elif isinstance(layer, ListLayer):
                    issues.extend(layer.position_problems())
                    issues.extend(cls._item_problems(map, layer))

        return issues

    @staticmethod
    def _item_problems(map: Map, layer: ListLayer) -> List[str]:
        issues = []
        for index, item in enumerate(layer.items):
            for attr_id, value in item.attribute_values.items():
                schema = map.item_attributes.get(attr_id)
                if schema is None:
                    issues.append(
                        f"Item #{index + 1} in layer '{layer.title}' has a value "
                        f"for '{attr_id}', which this format does not support."
                    )
                    continue
                reason = schema.problem(value)
                if reason:
                    issues.append(
                        f"Item #{index + 1} in layer '{layer.title}': {reason}"
                    )
            reason = item.text_problem()
            if reason:
                issues.append(
                    f"Item #{index + 1} in layer '{layer.title}': {reason}"
                )
        return issues
