"""
Quick demo script to run the SmartKas API locally.

This script starts a local server and shows how to call the assistant endpoints.
"""

import uvicorn

if __name__ == "__main__":
    print("=" * 60)
    print("Starting SmartKas Backend Demo")
    print("=" * 60)
    print()
    print("📌 API Endpoints:")
    print("   - Health Check:     GET  http://localhost:8000/health")
    print("   - Assistant chat:   POST http://localhost:8000/chat/send")
    print("   - Voice to text:    POST http://localhost:8000/chat/stt")
    print("   - Scan stock note:  POST http://localhost:8000/ocr/scan-products")
    print("   - Scan receipt:     POST http://localhost:8000/ocr/scan-transaction")
    print("   - Anomaly scan:     POST http://localhost:8000/anomalies/scan")
    print("   - API Docs:              http://localhost:8000/docs")
    print()
    print("🔐 Authentication:")
    print("   All endpoints (except /health) require:")
    print("   Authorization: Bearer <token>")
    print()
    print("📝 Test with curl:")
    print('   curl -X POST "http://localhost:8000/chat/send" \\')
    print('     -H "Authorization: Bearer <token>" \\')
    print('     -H "Content-Type: application/json" \\')
    print('     -d \'{"messages": [{"role": "user", "content": "jual 2 kopi susu"}]}\'')
    print()
    print("=" * 60)
    print("Starting server on http://localhost:8000")
    print("Press Ctrl+C to stop")
    print("=" * 60)
    print()

    uvicorn.run(
        "smartkas.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
