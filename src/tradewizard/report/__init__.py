from tradewizard.report.assembler import ExportReadinessReport, ReportAssembler

__all__ = ["ExportReadinessReport", "ReportAssembler"]
