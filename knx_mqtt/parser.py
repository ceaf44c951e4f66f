"""Loading of the YAML configuration and of the ETS group address export."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from os import PathLike
from xml.etree import ElementTree

import yaml

from knx_mqtt.models import KNX, Config, GroupAddress

log = logging.getLogger(__name__)

_DPT_PATTERN = re.compile(r"DPST-(\d+)-(\d+)")


class ConfigError(Exception):
    """The configuration or the group address export could not be read."""


def load_config(file_path: str | PathLike) -> Config:
    """Read and decode the YAML configuration file."""
    try:
        handle = open(file_path, encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"error opening file: {exc}") from exc
    with handle:
        try:
            data = yaml.safe_load(handle)
        except yaml.YAMLError as exc:
            raise ConfigError(f"error decoding YAML: {exc}") from exc
    if data is None:
        raise ConfigError("error decoding YAML: EOF")
    try:
        return Config.from_dict(data)
    except ValueError as exc:
        raise ConfigError(f"error decoding YAML: {exc}") from exc


def _children(element: ElementTree.Element, tag: str) -> Iterator[ElementTree.Element]:
    for child in element:
        if isinstance(child.tag, str) and child.tag.rsplit("}", 1)[-1] == tag:
            yield child


def parse_group_address_export(file_path: str | PathLike) -> KNX:
    """Read an ETS group address export into a registry of group addresses."""
    try:
        root = ElementTree.parse(file_path).getroot()
    except ElementTree.ParseError as exc:
        raise ConfigError(f"error parsing group address export: {exc}") from exc

    knx = KNX()
    for main in _children(root, "GroupRange"):
        for middle in _children(main, "GroupRange"):
            for address in _children(middle, "GroupAddress"):
                name = address.get("Name", "")
                gad = address.get("Address", "")
                dpts = address.get("DPTs", "")
                if not dpts:
                    log.warning(
                        "%s with address %s did not have a DPT specified and will be ignored",
                        name,
                        gad,
                    )
                    continue
                full_name = "/".join(
                    replace_slash_in_name(part)
                    for part in (main.get("Name", ""), middle.get("Name", ""), name)
                )
                knx.add_group_address(
                    GroupAddress(
                        full_name=full_name,
                        name=name,
                        address=gad,
                        datapoint=convert_dpt_format(dpts),
                    )
                )
    return knx


def replace_slash_in_name(name: str) -> str:
    """Replace slashes so that a name does not split an MQTT topic."""
    new_name = name.replace("/", "_")
    if new_name != name:
        log.warning("%s was replaced with %s to avoid MQTT topic separation.", name, new_name)
    return new_name


def convert_dpt_format(dpt: str) -> str:
    """Turn "DPST-9-1" into "9.001"; return "" when there is no subtype."""
    match = _DPT_PATTERN.search(dpt)
    if match is None:
        return ""
    main, sub = match.groups()
    return f"{main}.{sub.rjust(3, '0')}"