"""
Speech provider layer.

    - provider.py: AudioStream, BaseSpeechProvider, get_provider()
    - polly.py: AWS Polly implementation
"""
