from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class Vulnerability:
    id: str
    title: str = ""
    description: str = ""
    cvss_score: Optional[float] = None
    cvss_vector: Optional[str] = None
    cve: Optional[str] = None
    reference: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Vulnerability":
        score = data.get("cvssScore")
        return cls(
            id=str(data.get("id") or ""),
            title=data.get("title") or "",
            description=data.get("description") or "",
            cvss_score=float(score) if score is not None else None,
            cvss_vector=data.get("cvssVector"),
            cve=data.get("cve"),
            reference=data.get("reference"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "cvssScore": self.cvss_score,
            "cvssVector": self.cvss_vector,
            "cve": self.cve,
            "reference": self.reference,
        }


@dataclass
class Coordinate:
    """One OSS Index component report entry."""
    coordinates: str
    reference: str = ""
    description: str = ""
    vulnerabilities: List[Vulnerability] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Coordinate":
        return cls(
            coordinates=data.get("coordinates") or "",
            reference=data.get("reference") or "",
            description=data.get("description") or "",
            vulnerabilities=[Vulnerability.from_dict(v) for v in (data.get("vulnerabilities") or [])],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "coordinates": self.coordinates,
            "reference": self.reference,
            "description": self.description,
            "vulnerabilities": [v.to_dict() for v in self.vulnerabilities],
        }

    def is_vulnerable(self) -> bool:
        return len(self.vulnerabilities) > 0
