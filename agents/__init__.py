from agents.agents_graph import run_address_pipeline, run_upload_pipeline

__all__ = ["run_address_pipeline", "run_upload_pipeline"]
