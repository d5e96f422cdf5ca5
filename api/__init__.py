"""HTTP API for ReportRunner"""
