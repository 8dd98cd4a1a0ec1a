from .records import (
    TxStatus,
    ContractRecord,
    SourceCodeRecord,
    TransactionRecord,
    InternalTransactionRecord,
    TokenRecord,
    TokenTransferRecord,
)
from .analysis import (
    Severity,
    OptimizationCategory,
    Impact,
    Risk,
    Optimization,
    AnalysisRecord,
    ValueFlow,
    FunctionInvocation,
    TransactionAnalysisRecord,
    ExecutionResult,
    RevertLocation,
    RevertInfo,
    ComparisonResult,
    Difference,
    ComparisonMetrics,
    FixSuggestion,
    BatchItemResult,
)
