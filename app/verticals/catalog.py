"""
Built-in catalog of the sixteen data verticals.
Order here is the order shown in the vertical switcher.
"""
from __future__ import annotations

from app.verticals.models import VerticalDescriptor


def _vertical(
    key: str,
    label: str,
    short_label: str,
    icon: str,
    description: str,
    noun: str,
    plural: str,
) -> VerticalDescriptor:
    return VerticalDescriptor(
        key=key,
        label=label,
        short_label=short_label,
        icon=icon,
        description=description,
        record_table=f"{key}_{plural}",
        entitlement_table=f"{key}_access",
        entitlement_key_field=f"{noun}_id",
        unlock_operation=f"unlock_{key}_{plural}",
        unlock_operation_param=f"{noun}_ids",
    )


BUILTIN_VERTICALS: tuple[VerticalDescriptor, ...] = (
    _vertical("dealflow", "Deal Flow Intelligence", "Deal Flow", "💼",
              "Private companies, funding rounds and investors", "company", "companies"),
    _vertical("salesintel", "Sales Intelligence", "Sales", "📈",
              "B2B leads, buying signals and contacts", "lead", "leads"),
    _vertical("supplyintel", "Supply Chain Intelligence", "Supply", "🚚",
              "Suppliers, shipments and disruption risk", "supplier", "suppliers"),
    _vertical("clinicalintel", "Clinical Trials Intelligence", "Clinical", "🧪",
              "Clinical trials, sponsors and recruiting status", "trial", "trials"),
    _vertical("legalintel", "Legal Intelligence", "Legal", "⚖️",
              "Active cases, parties and deadlines", "case", "cases"),
    _vertical("marketresearch", "Market Research", "Market", "📊",
              "Market reports, sizing and sentiment", "report", "reports"),
    _vertical("academicintel", "Academic Intelligence", "Academic", "🎓",
              "Papers, authors and citations", "paper", "papers"),
    _vertical("creatorintel", "Creator Intelligence", "Creators", "🎥",
              "Creators, audiences and engagement", "creator", "creators"),
    _vertical("gamingintel", "Gaming Intelligence", "Gaming", "🎮",
              "Games, studios and review scores", "game", "games"),
    _vertical("realestateintel", "Real Estate Intelligence", "Real Estate", "🏢",
              "Properties, owners and valuations", "property", "properties"),
    _vertical("privatecreditintel", "Private Credit Intelligence", "Private Credit", "🏦",
              "Borrowers, facilities and credit risk", "borrower", "borrowers"),
    _vertical("cyberintel", "Cyber Intelligence", "Cyber", "🛡️",
              "Organizations, breaches and attack surface", "org", "orgs"),
    _vertical("biopharmintel", "Biopharma Intelligence", "Biopharma", "💊",
              "Drug programs, pipelines and partners", "program", "programs"),
    _vertical("industrialintel", "Industrial Intelligence", "Industrial", "🏭",
              "Facilities, capacity and compliance", "facility", "facilities"),
    _vertical("govintel", "Government Intelligence", "Gov", "🏛️",
              "Public contracts, agencies and awards", "contract", "contracts"),
    _vertical("insuranceintel", "Insurance Intelligence", "Insurance", "📑",
              "Carriers, brokers and loss ratios", "carrier", "carriers"),
)
