from __future__ import annotations

import uuid
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Iterable, Optional
from urllib.parse import unquote

from models.coordinate import Coordinate, Vulnerability

BOM_NS = "http://cyclonedx.org/schema/bom/1.1"
VULN_NS = "http://cyclonedx.org/schema/ext/vulnerability/1.0"

# Registered prefixes are used when the BOM is serialized: default ns for the bom, "v" for vulnerabilities
ET.register_namespace("", BOM_NS)
ET.register_namespace("v", VULN_NS)


def _bom(tag: str) -> str:
    return f"{{{BOM_NS}}}{tag}"


def _v(tag: str) -> str:
    return f"{{{VULN_NS}}}{tag}"


@dataclass(frozen=True)
class PurlParts:
    type: str
    namespace: Optional[str]
    name: str
    version: Optional[str]


def parse_purl(purl: str) -> PurlParts:
    """
    Minimal purl split: pkg:type/namespace/name@version?qualifiers#subpath

    Qualifiers and subpath are dropped; they are not needed for the BOM.
    """
    s = purl.strip()
    if not s.startswith("pkg:"):
        raise ValueError(f"not a package url: {purl!r}")
    s = s[len("pkg:"):].lstrip("/")
    s = s.split("#", 1)[0].split("?", 1)[0]

    version: Optional[str] = None
    if "@" in s:
        s, version = s.rsplit("@", 1)
        version = unquote(version) or None

    parts = [seg for seg in s.split("/") if seg]
    if len(parts) < 2:
        raise ValueError(f"package url needs a type and a name: {purl!r}")

    pkg_type = parts[0].lower()
    name = unquote(parts[-1])
    namespace = "/".join(unquote(seg) for seg in parts[1:-1]) or None
    return PurlParts(type=pkg_type, namespace=namespace, name=name, version=version)


def _text(parent: ET.Element, tag: str, value: Optional[str]) -> Optional[ET.Element]:
    if value is None or value == "":
        return None
    el = ET.SubElement(parent, tag)
    el.text = value
    return el


def _vulnerability_element(parent: ET.Element, ref: str, vuln: Vulnerability) -> None:
    v_el = ET.SubElement(parent, _v("vulnerability"), {"ref": ref})
    _text(v_el, _v("id"), vuln.cve or vuln.id)

    source = ET.SubElement(v_el, _v("source"), {"name": "ossindex"})
    _text(source, _v("url"), vuln.reference)

    if vuln.cvss_score is not None or vuln.cvss_vector:
        ratings = ET.SubElement(v_el, _v("ratings"))
        rating = ET.SubElement(ratings, _v("rating"))
        if vuln.cvss_score is not None:
            score = ET.SubElement(rating, _v("score"))
            _text(score, _v("base"), f"{vuln.cvss_score:g}")
        _text(rating, _v("vector"), vuln.cvss_vector)

    _text(v_el, _v("description"), vuln.description or vuln.title)


def from_coordinates(coordinates: Iterable[Coordinate], *, serial_number: Optional[str] = None) -> str:
    """
    Build a CycloneDX 1.1 XML BOM (with the vulnerability 1.0 extension) from
    OSS Index component reports. Coordinates that are not valid purls are skipped.
    """
    root = ET.Element(
        _bom("bom"),
        {
            "version": "1",
            "serialNumber": serial_number or f"urn:uuid:{uuid.uuid4()}",
        },
    )
    components = ET.SubElement(root, _bom("components"))

    for c in coordinates:
        try:
            parts = parse_purl(c.coordinates)
        except ValueError:
            continue

        comp = ET.SubElement(components, _bom("component"), {"type": "library", "bom-ref": c.coordinates})
        _text(comp, _bom("group"), parts.namespace)
        _text(comp, _bom("name"), parts.name)
        _text(comp, _bom("version"), parts.version or "")
        _text(comp, _bom("purl"), c.coordinates)

        if c.is_vulnerable():
            vulns = ET.SubElement(comp, _v("vulnerabilities"))
            for vuln in c.vulnerabilities:
                _vulnerability_element(vulns, c.coordinates, vuln)

    ET.indent(root, space="  ")
    body = ET.tostring(root, encoding="unicode")
    return '<?xml version="1.0" encoding="UTF-8"?>\n' + body + "\n"
