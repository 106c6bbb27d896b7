"""
Pydantic / datamodels used by the URL Monitor runtime.

Split into:
- change_models: ChangeEventRecord + DeliveryStatus + MalformedLine + results
- api_models: HTTP request/response schemas
"""
