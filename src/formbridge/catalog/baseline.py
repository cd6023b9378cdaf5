# src/formbridge/catalog/baseline.py
"""Compiled-in baseline configuration.

These values describe the record store as the form was built against it.
Runtime overrides are layered on top; nothing here is ever mutated.
"""

from types import MappingProxyType
from typing import Final

from formbridge.contracts.enums import LinkMode, SortDirection
from formbridge.contracts.lookup import LinkedRecordConfig

# Form key -> external field name in the primary table.
BASELINE_FIELD_MAP: Final = MappingProxyType(
    {
        "brandPartner": "Brand Partner",
        "seller": "Seller",
        "newSellerId": "Seller ID (new seller)",
        "inventoryFile": "Inventory File",
        "additionalFiles": "Additional Files",
        "inventoryType": "Inventory Type",
        "productAssortment": "Product Assortment",
        "inventoryCondition": "Inventory Condition",
        "overallListingRating": "Overall Listing Rating",
        "pricingStrengthSurplus": "SP Pricing",
        "pricingStrengthWholesale": "WH Pricing",
        "brandDemandSurplus": "SP Brand Demand",
        "brandDemandWholesale": "WH Brand Demand",
        "locationSurplus": "SP Location",
        "locationWholesale": "WH Location",
        "restrictionsSurplus": "SP Restrictions",
        "restrictionsWholesale": "WH Restrictions",
        "categoryGroups": "Category Groups",
        "inventoryExclusivity": "Inventory Exclusivity",
        "paperwork": "Paperwork",
        "tagPresets": "Tag presets",
        "allTags": "All tags",
        "inventoryNotes": "Notes",
        "region": "Region",
        "state": "State",
        "city": "City",
        "minimumOrder": "Minimum Order",
        "packagingType": "Packaging Type",
        "packagingDetails": "Packaging Details",
        "inventoryAvailability": "Inventory Availability",
        "fobOrExw": "FOB or EXW?",
        "leadTimeNumber": "Lead Time Number",
        "leadTimeInterval": "Lead Time Interval",
        "itemizationType": "Itemization Type",
        "currencyType": "Currency Type",
        "inlandFreight": "Does this lot incur inland freight?",
        "marginTakeRate": "Margin % (Take Rate)",
        "priceColumns": "Price Columns",
        "sellerPriceColumn": "Seller Price Column",
        "buyerPriceColumn": "Buyer Price Column",
        "flatOrReference": "Flat Item Price or Reference?",
        "referencePriceColumn": "Reference Price Column",
        "increaseOrDecrease": "Increase or decrease?",
        "maxPercentOffAsking": "Max Percent Off Asking",
        "listingDisaggregation": "Listing disaggregation",
        "customDisaggregation": "Custom disaggregation",
        "stealth": "Stealth?",
        "restrictionsString": "Restrictions (string)",
        "restrictionsCompany": "Restrictions (Company)",
        "restrictionsBuyerType": "Restrictions (Buyer Type)",
        "restrictionsRegion": "Restrictions (Region)",
        "p0FireListing": "P0 Fire Listing?",
        "notes": "Notes",
    }
)

TAG_PRESET_OPTIONS: Final[tuple[str, ...]] = (
    "Assorted Beauty",
    "Multibrand Luxury Assortment",
    "Retailer Beauty",
    "Wholesale Domestic",
    "Wholesale International",
)

BUYER_TYPE_OPTIONS: Final[tuple[str, ...]] = (
    "Amazon / Walmart seller",
    "Bin store",
    "Brand",
    "Brick and mortar",
    "Distributor",
    "Ghost agent",
    "Jobber",
    "Liquidator",
    "Liveseller",
    "Online",
    "Other",
    "Reseller",
    "Retailer",
    "Subscription box",
    "Wholesale",
)

# fmt: off
COUNTRY_OPTIONS: Final[tuple[str, ...]] = (
    "United States", "Afghanistan", "Albania", "Algeria", "Andorra", "Angola",
    "Antigua and Barbuda", "Argentina", "Armenia", "Aruba", "Australia", "Austria",
    "Azerbaijan", "Bahamas", "Bahrain", "Bangladesh", "Barbados", "Belarus",
    "Belgium", "Belize", "Bolivia", "Bosnia and Herzegovina", "Botswana", "Brazil",
    "Brunei", "Bulgaria", "Cambodia", "Cameroon", "Canada", "Cayman Islands",
    "Chile", "China", "Colombia", "Congo", "Costa Rica", "Croatia", "Cuba",
    "Cyprus", "Czech Republic", "Denmark", "Dominican Republic", "Ecuador", "Egypt",
    "El Salvador", "Estonia", "Faroe Islands", "Finland", "France", "French Polynesia",
    "Gabon", "Georgia", "Germany", "Ghana", "Greece", "Greenland", "Guadeloupe",
    "Guam", "Guatemala", "Guinea", "Haiti", "Honduras", "Hong Kong", "Hungary",
    "Iceland", "India", "Indonesia", "Iran", "Iraq", "Ireland", "Isle of Man",
    "Israel", "Italy", "Jamaica", "Japan", "Jordan", "Kazakhstan", "Kenya",
    "Kosovo", "Kuwait", "Latvia", "Lebanon", "Libya", "Liechtenstein", "Luxembourg",
    "Macedonia", "Madagascar", "Malaysia", "Malta", "Martinique", "Mauritius",
    "Mayotte", "Mexico", "Mongolia", "Montenegro", "Morocco", "Mozambique",
    "Myanmar (Burma)", "Namibia", "Nepal", "Netherlands", "New Caledonia",
    "New Zealand", "Nicaragua", "Nigeria", "Norway", "Oman", "Pakistan",
    "Palestine", "Panama", "Papua New Guinea", "Paraguay", "Peru", "Philippines",
    "Poland", "Portugal", "Puerto Rico", "Republic of Korea", "Republic of Lithuania",
    "Republic of Moldova", "Romania", "Russia", "San Marino", "Saudi Arabia",
    "Senegal", "Serbia", "Singapore", "Slovakia", "Slovenia", "South Africa",
    "Spain", "Sri Lanka", "St. Lucia", "Sudan", "Suriname", "Swaziland", "Sweden",
    "Switzerland", "Taiwan", "Tanzania", "Thailand", "Trinidad and Tobago", "Tunisia",
    "Turkey", "U.S. Virgin Islands", "Ukraine", "United Arab Emirates",
    "United Kingdom", "Uruguay", "Venezuela", "Vietnam", "Zambia", "Zimbabwe",
)
# fmt: on

BASELINE_OPTION_SETS: Final = MappingProxyType(
    {
        "TAG_PRESET_OPTIONS": TAG_PRESET_OPTIONS,
        "BUYER_TYPE_OPTIONS": BUYER_TYPE_OPTIONS,
        "COUNTRY_OPTIONS": COUNTRY_OPTIONS,
    }
)

# Live field name -> option set it feeds. Both spellings of the tag preset
# field have existed in the base.
OPTION_SYNC_FIELDS: Final = MappingProxyType(
    {
        "Restrictions (Buyer Type)": "BUYER_TYPE_OPTIONS",
        "Tag Presets": "TAG_PRESET_OPTIONS",
        "Tag presets": "TAG_PRESET_OPTIONS",
        "Restrictions (Region)": "COUNTRY_OPTIONS",
    }
)

# Known historical renames: baseline field name -> names it has carried since.
MAPPING_ALIAS_CANDIDATES: Final = MappingProxyType(
    {
        "Product Assortment": ("Assortment Strength",),
        "Inventory Condition": ("Inventory Quality",),
        "Overall Listing Rating": ("Overall Rating",),
        "WH Brand Demand": ("WH Demand", "SP Brand Demand"),
        "SP Location": ("SP US Landed", "Location"),
        "WH Location": ("WH US Landed", "Location"),
        "Inventory Exclusivity": ("Exclusivity",),
        "Tag presets": ("Tag Presets",),
        "All tags": ("Tags",),
        "Lead Time Number": ("Lead Time",),
        "Does this lot incur inland freight?": ("Lot Inland Freight",),
        "Margin % (Take Rate)": ("Margin (Take Rate)",),
        "Increase or decrease?": ("Reference Column Calculation",),
        "Max Percent Off Asking": ("Minimum Acceptable Offer",),
        "Listing disaggregation": ("Listing Disaggregation Options",),
        "Custom disaggregation": ("Listing Disaggregation Notes",),
        "Stealth?": ("Stealth",),
        "P0 Fire Listing?": ("WH - P0 Fire Listing",),
        "City": ("City (string)",),
        "Minimum Order": ("Minimum Order (String)",),
    }
)

BASELINE_LINKED_FIELDS: Final = MappingProxyType(
    {
        "brandPartner": LinkedRecordConfig(
            table="Admins",
            display_field="Name",
            mode=LinkMode.SINGLE,
            preview_fields=("Email",),
            sort_field="Name",
            sort_direction=SortDirection.ASC,
        ),
        "seller": LinkedRecordConfig(
            table="Sellers",
            display_field="Seller",
            mode=LinkMode.SINGLE,
            preview_fields=("Company",),
            sort_field="Created",
            sort_direction=SortDirection.DESC,
        ),
        "restrictionsCompany": LinkedRecordConfig(
            table="Companies",
            display_field="ID",
            mode=LinkMode.MULTI,
            preview_fields=("Name",),
            sort_field="Name",
            sort_direction=SortDirection.ASC,
        ),
    }
)

# Other table names a linked field's baseline table has been known by.
# Tried in order after the resolved and baseline tables during a lookup.
LINKED_TABLE_ALIASES: Final = MappingProxyType(
    {
        "brandPartner": ("Admin", "Team"),
        "seller": ("Seller",),
        "restrictionsCompany": ("Company",),
    }
)

# Form keys whose numeric value is a percentage stored as a fraction.
PERCENT_FORM_KEYS: Final[frozenset[str]] = frozenset({"marginTakeRate", "maxPercentOffAsking"})

# Form keys whose value is a list of uploaded files.
FILE_FORM_KEYS: Final[frozenset[str]] = frozenset({"inventoryFile", "additionalFiles"})
