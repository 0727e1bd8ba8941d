# LLM-backed workflow synthesis
from .llm_client import ChatCompletionClient
from .parser import GeneratedWorkflow, ParseFailure, parse_workflow_response
from .synthesizer import GraphSynthesizer, SynthesisResult, merge_graphs

__all__ = [
    'ChatCompletionClient',
    'GeneratedWorkflow',
    'ParseFailure',
    'parse_workflow_response',
    'GraphSynthesizer',
    'SynthesisResult',
    'merge_graphs',
]
