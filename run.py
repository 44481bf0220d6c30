import uvicorn
from photobooth.main import app
from photobooth.config import settings

if __name__ == "__main__":
    print("📸 Starting Kiosk Photobooth Server...")
    print(f"🌐 API available at: http://{settings.host}:{settings.port}/api")
    print(f"📁 Photos will be saved to: {settings.photos_dir}")
    print(f"🗄️  Results database: {settings.database_path}")
    print(f"🖨️  Printer: {settings.printer_name} ({settings.print_media})")
    print("\n🎯 Flows:")
    print("   - Racing theme: capture 1 → optional AI image → frame overlay")
    print("   - Quiz archetype: capture 2 → template with captions")
    print("\n🛑 Press Ctrl+C to stop the server\n")

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
