"""Tool catalogue: script files and command-line argument mapping.

Each supported tool name maps to a pre-compiled script in the toolchain's
build directory.  ``build_script_args`` turns the free-form request
parameters into the positional arguments each script expects.  Missing or
falsy parameters fall back to the toolchain's sample data.
"""
from __future__ import annotations

import os
from typing import Any, Dict, List, Mapping, Optional

NETWORK_TYPE = "TESTNET"
DEFAULT_ACTUS_URL = "http://localhost:8083/eventsBatch"
DEFAULT_COMPANY_NAME = "SREE PALANI ANDAVAR AGROS PRIVATE LIMITED"
DEFAULT_CIN = "U01112TZ2022PTC039493"
DEFAULT_BOL_FILE = "./src/data/scf/BILLOFLADING/BOL-VALID-1.json"
DEFAULT_EXECUTION_MODE = "ultra_strict"

_COMPOSED = "ComposedRecursiveOptim3LevelVerificationTestWithSign.js"
_BASEL3 = "RiskLiquidityBasel3OptimMerkleVerificationTestWithSign.js"
_ADVANCED = "RiskLiquidityAdvancedOptimMerkleVerificationTestWithSign.js"

GLEIF_TOOL = "get-GLEIF-verification-with-sign"
CORPORATE_TOOL = "get-Corporate-Registration-verification-with-sign"
EXIM_TOOL = "get-EXIM-verification-with-sign"

TOOL_SCRIPTS: Dict[str, str] = {
    GLEIF_TOOL: "GLEIFOptimMultiCompanyVerificationTestWithSign.js",
    CORPORATE_TOOL: "CorporateRegistrationOptimMultiCompanyVerificationTestWithSign.js",
    EXIM_TOOL: "EXIMOptimMultiCompanyVerificationTestWithSign.js",
    "get-Composed-Compliance-verification-with-sign": _COMPOSED,
    "get-BSDI-compliance-verification": "BusinessStdIntegrityOptimMerkleVerificationTestWithSign.js",
    "get-BPI-compliance-verification": "BusinessProcessIntegrityOptimMerkleVerificationFileTestWithSign.js",
    "get-RiskLiquidityACTUS-Verifier-Test_adv_zk": _ADVANCED,
    "get-RiskLiquidityACTUS-Verifier-Test_Basel3_Withsign": _BASEL3,
    "get-RiskLiquidityBasel3Optim-Merkle-verification-with-sign": _BASEL3,
    "get-RiskLiquidityAdvancedOptimMerkle-verification-with-sign": _ADVANCED,
    "get-StablecoinProofOfReservesRisk-verification-with-sign": "RiskLiquidityStableCoinOptimMerkleVerificationTestWithSign.js",
    "execute-composed-proof-full-kyc": _COMPOSED,
    "execute-composed-proof-financial-risk": _COMPOSED,
    "execute-composed-proof-business-integrity": _COMPOSED,
    "execute-composed-proof-comprehensive": _COMPOSED,
}

# Scripts probed by the health check.
CORE_SCRIPTS = (
    "GLEIFOptimMultiCompanyVerificationTestWithSign.js",
    "CorporateRegistrationOptimMultiCompanyVerificationTestWithSign.js",
    "EXIMOptimMultiCompanyVerificationTestWithSign.js",
)

# processType -> (file prefix, default expected dir, default actual dir)
_PROCESS_DIRS = {
    "SCF": ("SCF", "./src/data/scf/process/EXPECTED", "./src/data/scf/process/ACTUAL"),
    "DVP": ("DVP", "./src/data/DVP/process/EXPECTED", "./src/data/DVP/process/ACTUAL"),
    "STABLECOIN": (
        "STABLECOIN",
        "./src/data/STABLECOIN/process/EXPECTED",
        "./src/data/STABLECOIN/process/ACTUAL",
    ),
}
_PROCESS_VARIANTS = ("Accepted1", "Accepted2", "Rejected1", "Rejected2")

_RISK_CONFIGS = {
    "advanced": "src/data/RISK/Advanced/CONFIG/Advanced-VALID-1.json",
    "basel3": "src/data/RISK/Basel3/CONFIG/basel3-VALID-1.json",
    "stablecoin": "src/data/RISK/StableCoin/CONFIG/US/StableCoin-VALID-1.json",
}


def _first(params: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first truthy value among *keys*, else *default*."""
    for key in keys:
        value = params.get(key)
        if value:
            return value
    return default


def _arg(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _bpi_args(params: Mapping[str, Any]) -> List[str]:
    process_type = params.get("processType") or "SCF"
    actual_file = params.get("actualProcessFile") or ""
    key = process_type if process_type in _PROCESS_DIRS else "SCF"
    prefix, expected_dir, actual_dir = _PROCESS_DIRS[key]
    expected_dir = os.environ.get(f"ZK_PRET_DATA_PROCESS_PATH_{key}_EXPECTED", expected_dir)
    actual_dir = os.environ.get(f"ZK_PRET_DATA_PROCESS_PATH_{key}_ACTUAL", actual_dir)

    variant = "Accepted1"
    if key == process_type:
        variant = next((v for v in _PROCESS_VARIANTS if v in actual_file), "Accepted1")
    return [
        _arg(process_type),
        f"{expected_dir}/{prefix}-Expected.bpmn",
        f"{actual_dir}/{prefix}-{variant}.bpmn",
    ]


def _advanced_risk_args(params: Mapping[str, Any]) -> List[str]:
    return [
        _arg(_first(params, "liquidityThreshold", default=100)),
        _arg(_first(params, "actusUrl", default=DEFAULT_ACTUS_URL)),
        _arg(_first(params, "configFilePath", default=_RISK_CONFIGS["advanced"])),
        _arg(_first(params, "executionMode", default=DEFAULT_EXECUTION_MODE)),
    ]


def _basel3_args(params: Mapping[str, Any]) -> List[str]:
    return [
        _arg(_first(params, "lcrThreshold", "liquidityThreshold", default=100)),
        _arg(_first(params, "nsfrThreshold", default=100)),
        _arg(_first(params, "actusUrl", default=DEFAULT_ACTUS_URL)),
        _arg(_first(params, "configFilePath", default=_RISK_CONFIGS["basel3"])),
    ]


def _stablecoin_args(params: Mapping[str, Any]) -> List[str]:
    return [
        _arg(_first(params, "liquidityThreshold", default=100)),
        _arg(_first(params, "actusUrl", default=DEFAULT_ACTUS_URL)),
        _arg(_first(params, "configFilePath", default=_RISK_CONFIGS["stablecoin"])),
        _arg(_first(params, "executionMode", default=DEFAULT_EXECUTION_MODE)),
        _arg(_first(params, "jurisdiction", default="US")),
    ]


def _with_network(value: Optional[Any]) -> List[str]:
    args = [_arg(value)] if value else []
    args.append(NETWORK_TYPE)
    return args


def build_script_args(tool_name: str, params: Mapping[str, Any]) -> List[str]:
    """Map request *params* to the positional arguments of *tool_name*'s script."""
    if tool_name == GLEIF_TOOL:
        return _with_network(
            _first(params, "companyName", "legalName", "entityName", default=DEFAULT_COMPANY_NAME)
        )
    if tool_name == CORPORATE_TOOL:
        return _with_network(params.get("cin"))
    if tool_name == EXIM_TOOL:
        return _with_network(_first(params, "companyName", "legalName", "entityName"))
    if tool_name == "get-Composed-Compliance-verification-with-sign":
        return [
            _arg(_first(params, "companyName", default=DEFAULT_COMPANY_NAME)),
            _arg(_first(params, "cin", default=DEFAULT_CIN)),
        ]
    if tool_name == "get-BPI-compliance-verification":
        return _bpi_args(params)
    if tool_name == "get-BSDI-compliance-verification":
        return [_arg(_first(params, "filePath", default=DEFAULT_BOL_FILE))]
    if tool_name in (
        "get-RiskLiquidityACTUS-Verifier-Test_adv_zk",
        "get-RiskLiquidityAdvancedOptimMerkle-verification-with-sign",
    ):
        return _advanced_risk_args(params)
    if tool_name in (
        "get-RiskLiquidityACTUS-Verifier-Test_Basel3_Withsign",
        "get-RiskLiquidityBasel3Optim-Merkle-verification-with-sign",
    ):
        return _basel3_args(params)
    if tool_name == "get-StablecoinProofOfReservesRisk-verification-with-sign":
        return _stablecoin_args(params)
    # Composed proofs and anything else: optional entity name + network
    return _with_network(_first(params, "legalName", "entityName", "companyName"))
