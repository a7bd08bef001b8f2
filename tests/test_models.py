from vertexmux.models import (
    MODEL_SPECS,
    context_length,
    describe_model,
    get_model_spec,
    list_models,
    resolve_backend_id,
    resolve_provider,
    supports_streaming,
)


class TestModelRegistry:

    def test_resolve_provider(self):
        assert resolve_provider("gemini-1.5-pro") == "google"
        assert resolve_provider("claude-3-haiku-20240307") == "anthropic"
        assert resolve_provider("llama-3-1-8b-instruct") == "meta"
        assert resolve_provider("mistral-large-2407") == "mistral"
        assert resolve_provider("command-r") == "cohere"
        assert resolve_provider("gpt-4o") is None

    def test_resolve_backend_id(self):
        assert resolve_backend_id("gemini-2.5-flash") == "gemini-2.0-flash-exp"
        assert resolve_backend_id("claude-3-5-sonnet-20241022", "anthropic") == "claude-3-5-sonnet@20241022"

    def test_resolve_backend_id_unmapped(self):
        assert resolve_backend_id("my-custom-model") == "my-custom-model"
        # Provider mismatch falls back to the public id
        assert resolve_backend_id("gemini-1.5-pro", "anthropic") == "gemini-1.5-pro"

    def test_streaming_and_context(self):
        assert supports_streaming("gemini-1.5-flash") is True
        assert supports_streaming("text-bison") is False
        assert supports_streaming("unknown") is False
        assert context_length("gemini-1.5-pro") == 2000000
        assert context_length("unknown") == 8192

    def test_list_models_shape_and_order(self):
        models = list_models()
        assert len(models) == len(MODEL_SPECS)
        assert models[0]["id"] == MODEL_SPECS[0].public_id
        first = models[0]
        assert first["object"] == "model"
        assert first["owned_by"] == "google"
        assert first["root"] == first["id"]
        assert first["parent"] is None
        assert first["permission"] == []
        assert isinstance(first["created"], int)
        owners = [m["owned_by"] for m in models]
        # Grouped by provider
        assert owners.index("anthropic") > max(i for i, o in enumerate(owners) if o == "google")

    def test_describe_model(self):
        record = describe_model("gemini-1.5-pro")
        assert record["provider"] == "google"
        assert record["description"] == "Google's production-ready model with 2M context window"
        assert record["capabilities"]["function_calling"] is True
        assert record["capabilities"]["multimodal"] is True

        mistral = describe_model("mistral-large-2407")
        assert mistral["capabilities"]["function_calling"] is False
        assert mistral["capabilities"]["multimodal"] is False

        assert describe_model("nope") is None

    def test_get_model_spec(self):
        spec = get_model_spec("codestral-2405")
        assert spec.provider == "mistral"
        assert spec.backend_id == "codestral@2405"
        assert get_model_spec("nope") is None
