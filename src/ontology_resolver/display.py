import logging
from typing import Any, Callable

from . import formats
from .data_model import OntologyProperty

logger = logging.getLogger(__name__)


class DisplayFormatter:
    "Maps a raw property value to a display value using its ontology data and display type."

    def __init__(
        self, string_transforms: dict[str, Callable[[Any], Any]] | None = None
    ):
        self.string_transforms = (
            formats.STRING_TRANSFORMS if string_transforms is None else string_transforms
        )

    def format(
        self,
        ontology_property: OntologyProperty,
        value: Any,
        transforms: dict[str, bool] | None = None,
    ) -> Any:
        """
        Format `value` for display.

        Dispatch order: possible values, display type, data type, then the
        optional string transform pipeline. Anything else is returned as is.

        Parameters
        ----------
        ontology_property : OntologyProperty
            The schema definition of the property.
        value : Any
            The raw value.
        transforms : dict[str, bool] | None
            Ordered string transform names mapped to whether they are enabled.

        Returns
        -------
        display_value : Any
            Usually a string.
        """
        if ontology_property.possible_values:
            label = ontology_property.possible_values.get(str(value))
            if label:
                return label
            logger.warning(
                f"Unknown ontology value for key {value!r} of {ontology_property.title}"
            )

        match ontology_property.display_type:
            case "phoneNumber":
                return formats.string_phone_number(value)
            case "ssn":
                return formats.string_ssn(value)
            case "byte" | "bytes":
                return formats.bytes_pretty(value)
            case "heading":
                return formats.number_heading(value)
            case "duration":
                return formats.number_duration(value)

        match ontology_property.data_type:
            case "boolean":
                return formats.boolean_pretty(value)
            case "date":
                if ontology_property.display_type == "dateOnly":
                    return formats.date_string_utc(value)
                return formats.date_time_string(value)
            case "double" | "integer" | "currency" | "number":
                return formats.number_pretty(value)
            case "geoLocation":
                return formats.geo_location_pretty(value)

        if transforms:
            return self.apply_transforms(value, transforms)
        return value

    def apply_transforms(self, value: Any, transforms: dict[str, bool]) -> Any:
        "Apply each enabled, known string transform left to right."
        for name, enabled in transforms.items():
            transform = self.string_transforms.get(name)
            if enabled is True and callable(transform):
                value = transform(value)
        return value
