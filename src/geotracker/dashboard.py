"""Map page that polls the snapshot endpoint and shows one marker per entity."""

MAP_PAGE = """<!doctype html>
<html>
<head><meta charset="utf-8"><title>{{ title }}</title>
<meta name="viewport" content="width=device-width,initial-scale=1">
<link rel="stylesheet" href="https://unpkg.com/leaflet@1.9.4/dist/leaflet.css"/>
<style>html,body,#map{height:100%;margin:0;padding:0}#map{height:100vh}</style>
</head>
<body>
<div id="map"></div>

<script src="https://unpkg.com/leaflet@1.9.4/dist/leaflet.js"></script>
<script>
  var map = L.map('map').setView([20.5937, 78.9629], 5);
  L.tileLayer('https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png', {
    maxZoom: 19, attribution: '&copy; OpenStreetMap contributors'
  }).addTo(map);
  var markers = {};

  function popupText(loc) {
    var updated = new Date(loc.observedAt).toLocaleString();
    var div = document.createElement('div');
    div.textContent = 'Entity: ' + loc.entityId + ' | Last updated: ' + updated;
    return div;
  }

  async function poll() {
    try {
      const res = await fetch('{{ snapshot_url }}', {cache: 'no-store'});
      if (!res.ok) { return; }
      const locations = await res.json();
      locations.forEach(function (loc) {
        var marker = markers[loc.entityId];
        if (!marker) {
          marker = markers[loc.entityId] = L.marker([loc.latitude, loc.longitude]).addTo(map);
        } else {
          marker.setLatLng([loc.latitude, loc.longitude]);
        }
        marker.bindPopup(popupText(loc));
      });
    } catch (e) {
      console.error('Error fetching locations:', e);
    }
  }

  poll();
  setInterval(poll, {{ poll_ms }});
</script>
</body>
</html>
"""
